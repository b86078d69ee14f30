"""Spotify Web API async client with retry and rate-limit handling."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from listening_stats.spotify.constants import (
    ALBUMS_BATCH_SIZE,
    ALBUMS_URL,
    ARTISTS_BATCH_SIZE,
    ARTISTS_URL,
    DEFAULT_BATCH_PAUSE,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MAX_RETRY_DELAY,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRY_BASE_DELAY,
    ME_URL,
    RECENTLY_PLAYED_URL,
    TRACKS_BATCH_SIZE,
    TRACKS_URL,
)
from listening_stats.spotify.exceptions import (
    SpotifyAuthError,
    SpotifyClientError,
    SpotifyRateLimitError,
    SpotifyRequestError,
    SpotifyResponseError,
    SpotifyServerError,
)
from listening_stats.spotify.models import (
    BatchAlbumsResponse,
    BatchArtistsResponse,
    BatchTracksResponse,
    RecentlyPlayedResponse,
    SpotifyAlbumFull,
    SpotifyArtistFull,
    SpotifyTrack,
    SpotifyUser,
)

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]
T = TypeVar("T", bound=BaseModel)


class SpotifyClient:
    """Async Spotify Web API client.

    Takes an access_token per-instance (stateless re: auth). Handles 429 backoff
    and 5xx retries internally. Supports optional on_token_expired async callback
    for 401 retry. ``sleep`` is injectable so backoff timing can be observed
    without real timers.
    """

    def __init__(
        self,
        access_token: str,
        *,
        on_token_expired: Callable[[], Awaitable[str]] | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY,
        max_retry_delay: float = DEFAULT_MAX_RETRY_DELAY,
        batch_pause: float = DEFAULT_BATCH_PAUSE,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        self._access_token = access_token
        self._on_token_expired = on_token_expired
        self._max_retries = max_retries
        self._retry_base_delay = retry_base_delay
        self._max_retry_delay = max_retry_delay
        self._batch_pause = batch_pause
        self._request_timeout = request_timeout
        self._sleep = sleep

    def _backoff_delay(self, attempt: int, retry_after_header: str | None = None) -> float:
        """Seconds to wait before retry number ``attempt + 1``.

        A server-supplied Retry-After wins; otherwise exponential backoff
        seeded at ``retry_base_delay`` and capped at ``max_retry_delay``.
        """
        if retry_after_header:
            try:
                return max(float(retry_after_header), 0.0)
            except ValueError:
                logger.debug("Ignoring unparseable Retry-After header: %r", retry_after_header)
        return min(self._retry_base_delay * (2**attempt), self._max_retry_delay)

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, str | int] | None = None,
    ) -> httpx.Response:
        """Send an HTTP request with retry logic for 429/5xx and 401 callback.

        Bounded retry loop, one iteration per attempt:
        1. Send request with Bearer token
        2. If 2xx: return response
        3. If 401 and callback and not already retried: get new token, retry once
        4. If 429: wait (Retry-After header or exponential backoff), retry
        5. If 5xx: wait (exponential backoff), retry
        6. If other 4xx: raise SpotifyRequestError immediately
        After ``max_retries`` retries the last failure is raised.
        """
        endpoint = httpx.URL(url).path
        already_retried_401 = False
        last_status = 0
        last_retry_after: float | None = None
        attempt = 0

        while attempt <= self._max_retries:
            async with httpx.AsyncClient(timeout=self._request_timeout) as client:
                response = await client.request(
                    method,
                    url,
                    params=params,
                    headers={"Authorization": f"Bearer {self._access_token}"},
                )

            last_status = response.status_code

            if 200 <= response.status_code < 300:
                return response

            # 401 Unauthorized: try token refresh once, does not consume a retry
            if response.status_code == 401:
                if self._on_token_expired and not already_retried_401:
                    already_retried_401 = True
                    logger.info("Spotify returned 401, attempting token refresh")
                    self._access_token = await self._on_token_expired()
                    continue
                raise SpotifyAuthError("401 Unauthorized", endpoint=endpoint)

            if response.status_code == 429:
                delay = self._backoff_delay(attempt, response.headers.get("Retry-After"))
                last_retry_after = delay
                if attempt < self._max_retries:
                    logger.warning(
                        "Spotify rate limited (429), sleeping %.1fs (retry %d/%d)",
                        delay,
                        attempt + 1,
                        self._max_retries,
                    )
                    await self._sleep(delay)
                    attempt += 1
                    continue
                break

            if response.status_code >= 500:
                if attempt < self._max_retries:
                    delay = self._backoff_delay(attempt)
                    logger.warning(
                        "Spotify server error %d, sleeping %.1fs (retry %d/%d)",
                        response.status_code,
                        delay,
                        attempt + 1,
                        self._max_retries,
                    )
                    await self._sleep(delay)
                    attempt += 1
                    continue
                break

            # Other 4xx: non-retryable
            detail = f"HTTP {response.status_code}"
            try:
                error_body = response.json()
                detail = error_body.get("error", {}).get("message", detail)
            except (ValueError, AttributeError):
                if response.text:
                    detail = response.text[:200]
            raise SpotifyRequestError(response.status_code, detail, endpoint=endpoint)

        if last_status == 429:
            raise SpotifyRateLimitError(endpoint=endpoint, retry_after=last_retry_after, attempts=attempt + 1)
        raise SpotifyServerError(last_status, endpoint=endpoint, attempts=attempt + 1)

    @staticmethod
    def _parse(response: httpx.Response, model: type[T], url: str) -> T:
        """Validate a 2xx body as ``model``.

        Raises:
            SpotifyResponseError: If the body is not JSON or does not match ``model``.
        """
        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise SpotifyResponseError(
                f"unexpected response body: {str(exc).splitlines()[0]}",
                endpoint=httpx.URL(url).path,
            ) from exc

    # -------------------------------------------------------------------
    # Single-request API methods
    # -------------------------------------------------------------------

    async def get_current_user(self) -> SpotifyUser:
        """GET /me."""
        response = await self._request("GET", ME_URL)
        return self._parse(response, SpotifyUser, ME_URL)

    async def get_recently_played(self, *, limit: int = 50) -> RecentlyPlayedResponse:
        """GET /me/player/recently-played."""
        response = await self._request("GET", RECENTLY_PLAYED_URL, params={"limit": limit})
        return self._parse(response, RecentlyPlayedResponse, RECENTLY_PLAYED_URL)

    async def get_tracks(self, track_ids: Sequence[str]) -> BatchTracksResponse:
        """GET /tracks?ids=... (max 50 per request)."""
        if not track_ids:
            return BatchTracksResponse()
        ids = ",".join(track_ids[:TRACKS_BATCH_SIZE])
        response = await self._request("GET", TRACKS_URL, params={"ids": ids})
        return self._parse(response, BatchTracksResponse, TRACKS_URL)

    async def get_albums(self, album_ids: Sequence[str]) -> BatchAlbumsResponse:
        """GET /albums?ids=... (max 20 per request)."""
        if not album_ids:
            return BatchAlbumsResponse()
        ids = ",".join(album_ids[:ALBUMS_BATCH_SIZE])
        response = await self._request("GET", ALBUMS_URL, params={"ids": ids})
        return self._parse(response, BatchAlbumsResponse, ALBUMS_URL)

    async def get_artists(self, artist_ids: Sequence[str]) -> BatchArtistsResponse:
        """GET /artists?ids=... (max 50 per request)."""
        if not artist_ids:
            return BatchArtistsResponse()
        ids = ",".join(artist_ids[:ARTISTS_BATCH_SIZE])
        response = await self._request("GET", ARTISTS_URL, params={"ids": ids})
        return self._parse(response, BatchArtistsResponse, ARTISTS_URL)

    # -------------------------------------------------------------------
    # Batched lookups
    # -------------------------------------------------------------------

    async def fetch_tracks(self, track_ids: Sequence[str]) -> dict[str, SpotifyTrack]:
        """Fetch any number of tracks, keyed by track ID."""

        async def _batch(ids: list[str]) -> list[SpotifyTrack | None]:
            return (await self.get_tracks(ids)).tracks

        return await self._fetch_in_batches("tracks", track_ids, TRACKS_BATCH_SIZE, _batch)

    async def fetch_albums(self, album_ids: Sequence[str]) -> dict[str, SpotifyAlbumFull]:
        """Fetch any number of albums, keyed by album ID."""

        async def _batch(ids: list[str]) -> list[SpotifyAlbumFull | None]:
            return (await self.get_albums(ids)).albums

        return await self._fetch_in_batches("albums", album_ids, ALBUMS_BATCH_SIZE, _batch)

    async def fetch_artists(self, artist_ids: Sequence[str]) -> dict[str, SpotifyArtistFull]:
        """Fetch any number of artists, keyed by artist ID."""

        async def _batch(ids: list[str]) -> list[SpotifyArtistFull | None]:
            return (await self.get_artists(ids)).artists

        return await self._fetch_in_batches("artists", artist_ids, ARTISTS_BATCH_SIZE, _batch)

    async def _fetch_in_batches(
        self,
        label: str,
        ids: Sequence[str],
        batch_size: int,
        fetch_batch: Callable[[list[str]], Awaitable[list[T | None]]],
    ) -> dict[str, T]:
        """Run ``fetch_batch`` over ``ids`` in chunks, best effort.

        A batch that fails (including one that exhausted its rate-limit
        retries or came back with an unreadable body) is logged and skipped;
        its items stay unresolved. A short pause separates successive batches.
        """
        unique_ids = list(dict.fromkeys(i for i in ids if i))
        results: dict[str, T] = {}
        batch_count = (len(unique_ids) + batch_size - 1) // batch_size

        for batch_number, start in enumerate(range(0, len(unique_ids), batch_size), start=1):
            batch = unique_ids[start : start + batch_size]
            try:
                items = await fetch_batch(batch)
            except (SpotifyClientError, httpx.HTTPError) as exc:
                logger.error("Failed to fetch %s batch %d/%d: %s", label, batch_number, batch_count, exc)
                items = []

            for item in items:
                item_id = getattr(item, "id", None)
                if item is not None and item_id:
                    results[item_id] = item

            if batch_number < batch_count and self._batch_pause > 0:
                await self._sleep(self._batch_pause)

        return results
