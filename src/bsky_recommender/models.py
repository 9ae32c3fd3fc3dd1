"""Data models shared by the directories and the ranking engine."""
from dataclasses import dataclass, field
from typing import Optional, List

from pydantic import BaseModel


class Profile(BaseModel):
    """Bluesky actor profile.

    Profiles are immutable: a newer record replaces an older one, it is never
    patched in place. Follow lists only carry did/handle/display_name, while
    ``getProfiles`` also fills ``followers_count``.
    """
    did: str
    handle: str
    display_name: Optional[str] = None
    followers_count: Optional[int] = None

    class Config:
        frozen = True

    @classmethod
    def from_api(cls, data: dict) -> "Profile":
        """Build a profile from an XRPC actor view."""
        return cls(
            did=data["did"],
            handle=data.get("handle", ""),
            display_name=data.get("displayName"),
            followers_count=data.get("followersCount"),
        )


@dataclass
class RankedAccount:
    """A profile together with its personalized rank."""
    profile: Profile
    rank: float


@dataclass
class RankingParameters:
    """Inputs of a single ranking run."""
    your_did: str
    start_identifiers: List[str] = field(default_factory=list)
    limit: int = 100
    max_actors_per_level: int = 100
    include_your_follows: bool = False
    is_verbose: bool = False
