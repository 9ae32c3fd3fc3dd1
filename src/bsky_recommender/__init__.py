"""Bluesky actor recommendations via personalized PageRank over a sampled follow graph."""
from .graph import FollowGraph
from .models import Profile, RankedAccount, RankingParameters
from .rank import ActorRankCalculator
from .ranking import ActorRankingCreator, RankingPhase, RankingStatus, RankingError
from .selection import MostFollowedSelector

__all__ = [
    "ActorRankCalculator",
    "ActorRankingCreator",
    "FollowGraph",
    "MostFollowedSelector",
    "Profile",
    "RankedAccount",
    "RankingError",
    "RankingParameters",
    "RankingPhase",
    "RankingStatus",
]
