"""Actor ranking - samples the follow graph around start actors and ranks it.

A run goes through three sampling phases:
1. Fetch follows of the start actors and select first level actors
2. Fetch follows of first level actors and select second level actors
3. Fetch follows of second level actors and assemble the follow graph

The assembled graph is ranked with personalized PageRank, restarting at the
start actors, and the result is filtered, truncated and re-hydrated with
detailed profiles.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List

from .directory import ProfileDirectory, FollowDirectory
from .graph import FollowGraph
from .models import Profile, RankedAccount, RankingParameters
from .rank import ActorRankCalculator
from .selection import MostFollowedSelector


logger = logging.getLogger(__name__)

DAMPING_FACTOR = 0.8
ITERATION_COUNT = 100


class RankingError(Exception):
    """Ranking-specific error."""
    pass


class RankingPhase(Enum):
    SELECT_FIRST_LEVEL = "SelectFirstLevelActors"
    SELECT_SECOND_LEVEL = "SelectSecondLevelActors"
    FETCH_SECOND_LEVEL_FOLLOWS = "FetchFollowsOfSecondLevelActors"
    COMPLETED = "Completed"


_PHASE_ORDER = list(RankingPhase)


class RankingStatus:
    """Progress of a ranking run, polled while the run is in flight."""

    def __init__(self):
        self.phase = RankingPhase.SELECT_FIRST_LEVEL
        self.completed = 0
        self.total = 0

    def change_phase(self, phase: RankingPhase, total: int) -> None:
        if _PHASE_ORDER.index(phase) < _PHASE_ORDER.index(self.phase):
            raise RankingError(f"Cannot go back from {self.phase.value} to {phase.value}")
        self.phase = phase
        self.total = total
        self.completed = 0

    def fetched(self) -> None:
        self.completed += 1

    def percentage(self) -> float:
        if self.phase == RankingPhase.COMPLETED:
            return 100.0
        if self.phase == RankingPhase.SELECT_FIRST_LEVEL:
            return 0.0

        offset = 0.0 if self.phase == RankingPhase.SELECT_SECOND_LEVEL else 50.0
        if self.total <= 0:
            return offset
        return offset + 50.0 * (min(self.completed, self.total) / self.total)


@dataclass
class _RankingRun:
    """State owned by a single call to ``create``."""
    params: RankingParameters
    profiles: Dict[str, Profile] = field(default_factory=dict)
    actor_follows: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def log_level(self) -> int:
        return logging.INFO if self.params.is_verbose else logging.DEBUG


class ActorRankingCreator:
    """Creates a ranking of actors relevant to a group of start actors."""

    def __init__(self, profile_directory: ProfileDirectory, follow_directory: FollowDirectory):
        self.profile_directory = profile_directory
        self.follow_directory = follow_directory
        self.status = RankingStatus()

    def is_completed(self) -> bool:
        return self.status.phase == RankingPhase.COMPLETED

    def percentage(self) -> float:
        return self.status.percentage()

    async def _fetch_follows(self, run: _RankingRun, did: str) -> List[Profile]:
        logger.log(run.log_level, f"Fetch follows of {did}")
        follows = await self.follow_directory.fetch_follows(did)
        run.actor_follows[did] = [p.did for p in follows]
        for profile in follows:
            run.profiles[profile.did] = profile
        return follows

    async def create(self, params: RankingParameters) -> List[RankedAccount]:
        """Run all phases and return the ranked actors, best first."""
        self.status = RankingStatus()
        run = _RankingRun(params=params)

        try:
            start_dids = await self._resolve_start_actors(run)
            first_level_selector, first_level_dids = await self._select_first_level(run, start_dids)
            second_level_selector, second_level_dids = await self._select_second_level(
                run, start_dids, first_level_dids
            )
            graph = await self._build_graph(
                run,
                start_dids,
                first_level_dids,
                second_level_dids,
                first_level_selector.all_followed_dids() + second_level_selector.all_followed_dids()
            )

            ranked_actors = self._rank(run, graph)
            self.status.change_phase(RankingPhase.COMPLETED, 0)

            excluded_dids = {params.your_did}
            if not params.include_your_follows:
                your_follows = await self.follow_directory.fetch_follows(params.your_did)
                excluded_dids.update(p.did for p in your_follows)

            ranked_actors.sort(key=lambda ra: ra.rank, reverse=True)
            result = [ra for ra in ranked_actors if ra.profile.did not in excluded_dids][:params.limit]
            await self._hydrate_profile_details(result)
            return result

        except Exception:
            if not self.is_completed():
                self.status.change_phase(RankingPhase.COMPLETED, 0)
            raise

    async def _resolve_start_actors(self, run: _RankingRun) -> List[str]:
        identifiers = run.params.start_identifiers
        logger.log(run.log_level, f"Fetch profiles of {', '.join(identifiers)}")
        start_profiles = await self.profile_directory.resolve_profiles(identifiers)
        for profile in start_profiles:
            run.profiles[profile.did] = profile
        return list(dict.fromkeys(p.did for p in start_profiles))

    async def _select_first_level(self, run: _RankingRun, start_dids: List[str]):
        logger.log(run.log_level, "Fetch follows of start actors and select first level actors")
        selector = MostFollowedSelector(start_dids)
        for did in start_dids:
            follows = await self._fetch_follows(run, did)
            # Follow records lack follower counts, which the tie-break needs
            followed_profiles = await self.profile_directory.resolve_profiles(
                [p.did for p in follows]
            )
            selector.add_follows(did, followed_profiles)
        return selector, selector.select_most_followed(run.params.max_actors_per_level)

    async def _select_second_level(
        self,
        run: _RankingRun,
        start_dids: List[str],
        first_level_dids: List[str]
    ):
        logger.log(run.log_level, "Fetch follows of first level actors and select second level actors")
        self.status.change_phase(RankingPhase.SELECT_SECOND_LEVEL, len(first_level_dids))
        selector = MostFollowedSelector([*start_dids, *first_level_dids])
        for did in first_level_dids:
            follows = await self._fetch_follows(run, did)
            selector.add_follows(did, follows)
            self.status.fetched()
        return selector, selector.select_most_followed(run.params.max_actors_per_level)

    async def _build_graph(
        self,
        run: _RankingRun,
        start_dids: List[str],
        first_level_dids: List[str],
        second_level_dids: List[str],
        observed_dids: List[str]
    ) -> FollowGraph:
        logger.log(run.log_level, "Fetch follows of second level actors")
        self.status.change_phase(RankingPhase.FETCH_SECOND_LEVEL_FOLLOWS, len(second_level_dids))
        graph = FollowGraph(start_dids)

        # Inner levels keep their complete follow lists
        for did in [*start_dids, *first_level_dids]:
            follows = run.actor_follows.get(did)
            if follows is not None:
                graph.add_follows(did, follows)

        # The outer level only links back into the observed neighborhood
        universe = set(start_dids)
        universe.update(observed_dids)
        for did in second_level_dids:
            follows = await self._fetch_follows(run, did)
            follows_to_add = [p.did for p in follows if p.did in universe]
            if follows_to_add:
                graph.add_follows(did, follows_to_add)
            self.status.fetched()

        logger.log(run.log_level, f"Follow graph has {graph.node_count} actors and {graph.edge_count} follows")
        return graph

    def _rank(self, run: _RankingRun, graph: FollowGraph) -> List[RankedAccount]:
        calculator = ActorRankCalculator(DAMPING_FACTOR, ITERATION_COUNT)
        ranks = calculator.calculate(graph)
        ranked_actors = []
        for index, did in enumerate(graph.dids):
            profile = run.profiles.get(did)
            if profile is not None:
                ranked_actors.append(RankedAccount(profile=profile, rank=ranks[index]))
        return ranked_actors

    async def _hydrate_profile_details(self, result: List[RankedAccount]) -> None:
        details = await self.profile_directory.resolve_profiles([ra.profile.did for ra in result])
        details_by_did = {p.did: p for p in details}
        for ranked_actor in result:
            detail = details_by_did.get(ranked_actor.profile.did)
            if detail is not None:
                ranked_actor.profile = detail
