"""Profile and follow directories - cached lookups on top of the Bluesky client."""
import logging
from datetime import timedelta
from pathlib import Path
from typing import Iterable, Optional, Protocol, Any
import httpx
import tenacity

from .bluesky_client import BlueskyClient, BlueskyAPIError, GET_PROFILES_MAX_ACTORS
from .cache import FileCache
from .config import settings
from .models import Profile


logger = logging.getLogger(__name__)


class Cache(Protocol):
    """Key/value store injected into the directories."""

    def get(self, key: str) -> Optional[Any]: ...

    def put(self, key: str, value: Any) -> None: ...


def _is_retryable(exc: BaseException) -> bool:
    """Rate limits, server errors and transport failures are worth retrying."""
    if isinstance(exc, BlueskyAPIError):
        return exc.status_code == 429 or exc.status_code >= 500
    return isinstance(exc, httpx.TransportError)


def _log_retry(retry_state: tenacity.RetryCallState) -> None:
    """Log retry attempts for debugging."""
    logger.warning(
        f"Retry attempt {retry_state.attempt_number} after "
        f"{retry_state.outcome.exception() if retry_state.outcome else 'unknown error'}"
    )


# Retry decorator for API calls with exponential backoff
api_retry = tenacity.retry(
    stop=tenacity.stop_after_attempt(3),
    wait=tenacity.wait_exponential(multiplier=1, min=2, max=30),
    retry=tenacity.retry_if_exception(_is_retryable),
    before_sleep=_log_retry,
    reraise=True,
)


def create_caches(cache_dir: Path = None, expire_hours: int = None) -> tuple[FileCache, FileCache]:
    """Build the (profile, follows) caches from settings."""
    root = Path(cache_dir or settings.cache_dir)
    max_age = timedelta(hours=expire_hours or settings.cache_expire_hours)
    return (
        FileCache(root / "profile", max_age=max_age),
        FileCache(root / "follows", max_age=max_age),
    )


class ProfileDirectory:
    """Resolves handles or DIDs to full profiles.

    Results are not aligned with the input order and unknown actors are
    silently dropped by the API, so callers must index the result by DID.
    Errors are propagated to the caller.
    """

    def __init__(
        self,
        client: BlueskyClient,
        cache: Cache,
        batch_size: int = None
    ):
        self.client = client
        self.cache = cache
        self.batch_size = min(batch_size or settings.profiles_batch_size, GET_PROFILES_MAX_ACTORS)

    async def resolve_profiles(
        self,
        identifiers: Iterable[str],
        with_cache: bool = True
    ) -> list[Profile]:
        """Resolve identifiers, serving fresh cache entries first."""
        result: list[Profile] = []
        to_fetch: list[str] = []

        for identifier in identifiers:
            cached = self.cache.get(identifier) if with_cache else None
            if cached is not None:
                result.append(Profile.model_validate(cached))
            else:
                to_fetch.append(identifier)

        for i in range(0, len(to_fetch), self.batch_size):
            batch = to_fetch[i:i + self.batch_size]
            for profile in await self._get_profiles(batch):
                self.cache.put(profile.did, profile.model_dump())
                result.append(profile)

        return result

    @api_retry
    async def _get_profiles(self, actors: list[str]) -> list[Profile]:
        logger.debug(f"Fetching {len(actors)} profiles")
        return await self.client.get_profiles(actors)


class FollowDirectory:
    """Fetches the (possibly truncated) follow list of an account.

    A failed fetch yields an empty list so that a single broken or deleted
    account cannot abort a whole ranking run. Failed fetches are not cached.
    """

    def __init__(
        self,
        client: BlueskyClient,
        cache: Cache,
        limit: int = None
    ):
        self.client = client
        self.cache = cache
        self.limit = limit or settings.follows_limit

    async def fetch_follows(self, did: str) -> list[Profile]:
        """Return the profiles ``did`` follows, or [] on failure."""
        cached = self.cache.get(did)
        if cached is not None:
            try:
                return [Profile.model_validate(p) for p in cached]
            except (TypeError, ValueError) as e:
                logger.debug(f"Ignoring invalid cached follows of {did}: {e}")

        try:
            follows = await self._fetch_all(did)
        except Exception as e:
            logger.warning(f"Failed to fetch follows of {did}: {e}")
            return []

        self.cache.put(did, [p.model_dump() for p in follows])
        return follows

    @api_retry
    async def _fetch_all(self, did: str) -> list[Profile]:
        follows: list[Profile] = []
        async for profiles, cursor_in, cursor_out in self.client.paginate_follows(did):
            follows.extend(profiles)
            if len(follows) >= self.limit:
                logger.debug(f"Follows of {did} truncated at {len(follows)}")
                break
        return follows
