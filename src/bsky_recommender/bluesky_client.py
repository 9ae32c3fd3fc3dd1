"""Bluesky XRPC client for profile and follow lookups."""
from typing import Optional, AsyncGenerator
from dataclasses import dataclass
import httpx

from .config import settings
from .models import Profile


GET_PROFILES_MAX_ACTORS = 25
GET_FOLLOWS_PAGE_SIZE = 100


class BlueskyAPIError(Exception):
    """Bluesky API error."""
    def __init__(self, status_code: int, message: str, response: dict = None):
        self.status_code = status_code
        self.message = message
        self.response = response or {}
        super().__init__(f"Bluesky API {status_code}: {message}")


@dataclass
class Session:
    """Authenticated session returned by createSession."""
    did: str
    handle: str
    access_jwt: str


class BlueskyClient:
    """Bluesky XRPC client with pagination support."""

    def __init__(
        self,
        service_url: str = None,
        timeout: float = None,
        transport: httpx.AsyncBaseTransport = None
    ):
        self.service_url = service_url or settings.service_url
        self.client = httpx.AsyncClient(
            base_url=self.service_url,
            timeout=timeout or settings.request_timeout,
            transport=transport
        )
        self.session: Optional[Session] = None

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _request(
        self,
        method: str,
        nsid: str,
        params: dict = None,
        json: dict = None
    ) -> dict:
        """Call an XRPC method, return response data."""
        response = await self.client.request(
            method, f"/xrpc/{nsid}", params=params, json=json
        )

        if response.status_code == 429:
            raise BlueskyAPIError(429, "Rate limited")

        if response.status_code != 200:
            try:
                error_data = response.json()
            except ValueError:
                error_data = {"error": response.text}
            raise BlueskyAPIError(response.status_code, str(error_data), error_data)

        return response.json()

    async def login(self, identifier: str, password: str) -> Session:
        """Create a session and authenticate subsequent requests."""
        data = await self._request(
            "POST",
            "com.atproto.server.createSession",
            json={"identifier": identifier, "password": password}
        )
        self.session = Session(
            did=data["did"],
            handle=data["handle"],
            access_jwt=data["accessJwt"]
        )
        self.client.headers["Authorization"] = f"Bearer {self.session.access_jwt}"
        return self.session

    async def get_profiles(self, actors: list[str]) -> list[Profile]:
        """Get detailed profiles for up to 25 actors (handles or DIDs)."""
        if len(actors) > GET_PROFILES_MAX_ACTORS:
            raise ValueError(
                f"getProfiles accepts at most {GET_PROFILES_MAX_ACTORS} actors, got {len(actors)}"
            )
        data = await self._request(
            "GET", "app.bsky.actor.getProfiles", params={"actors": actors}
        )
        return [Profile.from_api(p) for p in data.get("profiles", [])]

    async def paginate_follows(
        self,
        actor: str,
        page_size: int = GET_FOLLOWS_PAGE_SIZE
    ) -> AsyncGenerator[tuple[list[Profile], Optional[str], Optional[str]], None]:
        """
        Paginate through the accounts ``actor`` follows.
        Yields: (profiles, cursor_in, cursor_out)
        """
        cursor = None

        while True:
            params = {"actor": actor, "limit": page_size}
            if cursor:
                params["cursor"] = cursor

            cursor_in = cursor
            data = await self._request("GET", "app.bsky.graph.getFollows", params)

            profiles = [Profile.from_api(p) for p in data.get("follows", [])]
            cursor_out = data.get("cursor")

            yield (profiles, cursor_in, cursor_out)

            # A short page means the list is exhausted even if a cursor came back
            if not cursor_out or len(profiles) < page_size:
                break

            cursor = cursor_out
