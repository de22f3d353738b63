"""Sportmonks cricket API client with rate limiting and retries."""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from cricket_fantasy.errors import ProviderError

logger = logging.getLogger(__name__)

SPORTMONKS_BASE_URL = "https://cricket.sportmonks.com/api/v2.0"

# HTTP status codes that should trigger a retry
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

# Per-fixture payloads the provider can embed via ?include=
INCLUDE_KINDS = frozenset({"batting", "bowling", "balls"})

# Raw bodies attached to ProviderError are truncated to keep logs readable
MAX_ERROR_BODY_CHARS = 500


def _is_retryable_error(exception: BaseException) -> bool:
    """Check if an error should trigger a retry."""
    if isinstance(exception, (httpx.TimeoutException, httpx.NetworkError)):
        return True
    if isinstance(exception, httpx.HTTPStatusError):
        return exception.response.status_code in RETRYABLE_STATUS_CODES
    return False


@dataclass(slots=True)
class RawPlayer:
    """A squad member as returned by the teams/{id}/squad endpoint."""

    id: int
    name: str
    team_id: int
    role: str | None
    photo_url: str | None


def _extract_include(payload: dict[str, Any], kind: str) -> list[dict[str, Any]]:
    """Pull the records for one include kind out of a fixture payload.

    The provider answers in one of two shapes: the records embedded under
    ``data.<kind>`` (sometimes wrapped again as ``{"data": [...]}``), or a
    JSON:API style top-level ``included`` array tagged with ``type``. The
    embedded shape wins whenever it is present.
    """
    data = payload.get("data")
    primary = data.get(kind) if isinstance(data, dict) else None

    if primary is not None:
        if isinstance(primary, dict):
            primary = primary.get("data") or []
        return [record for record in primary if isinstance(record, dict)]

    included = payload.get("included")
    if isinstance(included, list):
        return [
            item
            for item in included
            if isinstance(item, dict) and str(item.get("type") or "").lower() == kind
        ]

    return []


def _squad_member(player: dict[str, Any], team_id: int) -> RawPlayer:
    """Map one squad entry to a RawPlayer."""
    name = player.get("fullname") or (
        f"{player.get('firstname') or ''} {player.get('lastname') or ''}".strip()
    )
    position = player.get("position")
    role = position.get("name") if isinstance(position, dict) else None
    return RawPlayer(
        id=int(player["id"]),
        name=name,
        team_id=team_id,
        role=role or None,
        photo_url=player.get("image_path") or None,
    )


class SportmonksClient:
    """
    Sportmonks cricket API client with rate limiting.

    Every failure that reaches the caller is a ProviderError; transient
    failures (429, 5xx, timeouts) are retried first.
    """

    def __init__(
        self,
        api_token: str,
        base_url: str = SPORTMONKS_BASE_URL,
        requests_per_second: float = 2.0,
        max_concurrent: int = 5,
        timeout: float = 30.0,
    ):
        """
        Initialize the client.

        Args:
            api_token: Sportmonks API token, sent with every request
            base_url: API root, without trailing slash
            requests_per_second: Target rate (1.0 = 1 request/sec)
            max_concurrent: Maximum concurrent requests
            timeout: Per-request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.delay = 1.0 / requests_per_second
        self.timeout = timeout
        self.semaphore = asyncio.Semaphore(max_concurrent)
        self._api_token = api_token
        self._last_request_time = 0.0
        self._lock = asyncio.Lock()
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client (lazy initialization, coroutine-safe)."""
        if self._client is None:
            async with self._lock:
                if self._client is None:  # Double-check after acquiring lock
                    self._client = httpx.AsyncClient(
                        timeout=self.timeout,
                        params={"api_token": self._api_token},
                    )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client and release resources (coroutine-safe)."""
        async with self._lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None

    async def __aenter__(self) -> "SportmonksClient":
        """Enter async context manager."""
        return self

    async def __aexit__(self, *args: object) -> None:
        """Exit async context manager and close client."""
        await self.close()

    async def _rate_limit(self) -> None:
        """Apply rate limiting between requests."""
        async with self._lock:
            now = time.monotonic()
            elapsed = now - self._last_request_time
            if elapsed < self.delay:
                await asyncio.sleep(self.delay - elapsed)
            self._last_request_time = time.monotonic()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=30),
        retry=retry_if_exception(_is_retryable_error),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _get_with_retry(
        self, path: str, params: dict[str, Any] | None = None
    ) -> httpx.Response:
        """Make a rate-limited GET request with retries."""
        async with self.semaphore:
            await self._rate_limit()

            client = await self._get_client()
            response = await client.get(f"{self.base_url}{path}", params=params)
            response.raise_for_status()
            return response

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """GET a JSON object, translating every failure into ProviderError."""
        try:
            response = await self._get_with_retry(path, params)
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                f"Provider request to {path} failed",
                status_code=e.response.status_code,
                body=e.response.text[:MAX_ERROR_BODY_CHARS],
            ) from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Provider request to {path} failed: {e!r}") from e

        try:
            payload = response.json()
        except ValueError as e:
            raise ProviderError(
                f"Provider returned non-JSON body for {path}",
                status_code=response.status_code,
                body=response.text[:MAX_ERROR_BODY_CHARS],
            ) from e

        if not isinstance(payload, dict):
            raise ProviderError(
                f"Provider returned unexpected {type(payload).__name__} for {path}",
                status_code=response.status_code,
                body=response.text[:MAX_ERROR_BODY_CHARS],
            )
        return payload

    async def get_fixtures(self, league_id: int, season_id: int) -> list[dict[str, Any]]:
        """Fetch all fixtures for a league season."""
        payload = await self._get(
            "/fixtures",
            params={
                "filter[league_id]": league_id,
                "filter[season_id]": season_id,
            },
        )
        fixtures = payload.get("data") or []
        if not isinstance(fixtures, list):
            raise ProviderError(f"Fixture list for league {league_id} is not a list")
        return fixtures

    async def get_squad(self, team_id: int, season_id: int) -> list[RawPlayer]:
        """
        Fetch a team's squad for a season.

        Entries without a provider id are skipped.
        """
        payload = await self._get(f"/teams/{team_id}/squad/{season_id}")
        data = payload.get("data")
        squad = data.get("squad") if isinstance(data, dict) else None

        players = []
        for player in squad or []:
            if not isinstance(player, dict) or not player.get("id"):
                logger.warning(f"Skipping squad entry without id for team {team_id}")
                continue
            players.append(_squad_member(player, team_id))
        return players

    async def get_fixture_include(
        self, fixture_id: int, include_kind: str
    ) -> list[dict[str, Any]]:
        """
        Fetch one embedded collection (batting, bowling or balls) for a fixture.

        Args:
            fixture_id: Provider fixture ID
            include_kind: One of "batting", "bowling", "balls"

        Returns:
            Raw provider records for that collection (possibly empty)
        """
        if include_kind not in INCLUDE_KINDS:
            raise ValueError(f"Unsupported include kind: {include_kind!r}")

        payload = await self._get(
            f"/fixtures/{fixture_id}", params={"include": include_kind}
        )
        return _extract_include(payload, include_kind)
