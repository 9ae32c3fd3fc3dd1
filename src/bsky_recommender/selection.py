"""Selection of the most followed actors within one sampling level."""
from typing import Dict, Iterable, List, Set

from .models import Profile


class MostFollowedSelector:
    """
    Counts how many recorded sources follow each candidate and selects a
    bounded top set.

    When the cutoff falls inside a group of equally counted candidates, the
    group is resolved round-robin over the sources in recording order, each
    source offering its candidates by descending follower count. This favors
    popular accounts followed by many distinct sources and is fully
    deterministic for a fixed input order.
    """

    def __init__(self, excluded_dids: Iterable[str]):
        self.excluded_dids: Set[str] = set(excluded_dids)
        self.follow_counts: Dict[str, int] = {}
        self.actor_follows: Dict[str, List[str]] = {}

    def add_follows(self, did: str, follows: Iterable[Profile]) -> None:
        """Record the accounts followed by source ``did``."""
        accepted: List[Profile] = []
        for profile in follows:
            if profile.did in self.excluded_dids:
                continue
            accepted.append(profile)
            self.follow_counts[profile.did] = self.follow_counts.get(profile.did, 0) + 1

        # sorted() is stable, so equal follower counts keep input order
        accepted = sorted(accepted, key=lambda p: p.followers_count or 0, reverse=True)
        self.actor_follows[did] = [p.did for p in accepted]

    def select_most_followed(self, limit: int) -> List[str]:
        """Return exactly min(limit, number of candidates) candidate DIDs."""
        if limit < 1:
            raise ValueError(f"limit must be positive, got {limit}")

        all_dids = list(self.follow_counts)
        if len(all_dids) <= limit:
            return all_dids

        ranked = sorted(all_dids, key=lambda d: self.follow_counts[d], reverse=True)
        if self.follow_counts[ranked[limit - 1]] != self.follow_counts[ranked[limit]]:
            return ranked[:limit]

        border_count = self.follow_counts[ranked[limit]]
        selected = [d for d in ranked if self.follow_counts[d] > border_count]
        on_border = {d for d in ranked if self.follow_counts[d] == border_count}
        border_follows = [
            [d for d in follows if d in on_border]
            for follows in self.actor_follows.values()
        ]

        selected_on_border: Set[str] = set()
        longest = max((len(follows) for follows in border_follows), default=0)
        position = 0
        # Every border candidate appears in some source's list unless a source
        # was recorded twice, so the scan normally fills up before it ends.
        while len(selected) < limit and position < longest:
            for follows in border_follows:
                if len(selected) >= limit:
                    break
                if position >= len(follows):
                    continue
                did = follows[position]
                if did not in selected_on_border:
                    selected.append(did)
                    selected_on_border.add(did)
            position += 1

        return selected

    def all_followed_dids(self) -> List[str]:
        """Every candidate observed so far, selected or not."""
        return list(self.follow_counts)
