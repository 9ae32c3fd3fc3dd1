"""Indexed follow graph sampled around the start actors."""
from typing import Dict, Iterable, List, Set


class FollowGraph:
    """
    Directed follow graph over integer node indices.

    Indices are assigned in first-seen order. Start actors are registered at
    construction time, so they always occupy indices 0..k-1 and form the
    restart set of the rank calculation.
    """

    def __init__(self, start_dids: Iterable[str]):
        self.dids: List[str] = []
        self.did_indices: Dict[str, int] = {}
        self.follows: List[List[int]] = []
        self.start_dids: List[str] = []
        self.start_indices: Set[int] = set()

        for did in start_dids:
            index = self.ensure_index(did)
            if index not in self.start_indices:
                self.start_dids.append(did)
                self.start_indices.add(index)

    def ensure_index(self, did: str) -> int:
        """Return the index of ``did``, assigning the next one if unseen."""
        index = self.did_indices.get(did)
        if index is not None:
            return index
        index = len(self.dids)
        self.dids.append(did)
        self.did_indices[did] = index
        self.follows.append([])
        return index

    def add_follows(self, did: str, followed_dids: Iterable[str]) -> None:
        """Append edges did -> followed, keeping duplicates."""
        index = self.ensure_index(did)
        for followed_did in followed_dids:
            self.follows[index].append(self.ensure_index(followed_did))

    @property
    def node_count(self) -> int:
        return len(self.dids)

    @property
    def edge_count(self) -> int:
        return sum(len(f) for f in self.follows)
