"""Spotify credential providers and API client bootstrap."""

import asyncio
import logging
from datetime import UTC, datetime, timedelta
from typing import Protocol

import httpx

from listening_stats.settings import PipelineSettings
from listening_stats.spotify.client import SleepFunc, SpotifyClient
from listening_stats.spotify.constants import DEFAULT_REQUEST_TIMEOUT, SPOTIFY_TOKEN_URL
from listening_stats.spotify.exceptions import SpotifyAuthError, SpotifyClientError

logger = logging.getLogger(__name__)


class CredentialError(Exception):
    """Raised when an access token cannot be obtained."""


class CredentialProvider(Protocol):
    """Source of Spotify access tokens."""

    async def get_valid_access_token(self) -> str: ...

    async def refresh_access_token(self) -> str: ...

    async def test_token(self, token: str) -> bool: ...


class RefreshTokenProvider:
    """Exchanges a long-lived refresh token for access tokens.

    The access token is cached in memory and refreshed when it is within
    ``expiry_buffer_seconds`` of expiring.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        *,
        expiry_buffer_seconds: int = 60,
        token_url: str = SPOTIFY_TOKEN_URL,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._refresh_token = refresh_token
        self._buffer = timedelta(seconds=expiry_buffer_seconds)
        self._token_url = token_url
        self._request_timeout = request_timeout
        self._access_token: str | None = None
        self._expires_at: datetime | None = None

    async def get_valid_access_token(self) -> str:
        """Return the cached access token, refreshing it if needed.

        Raises:
            CredentialError: If the token endpoint rejects the refresh.
        """
        if self._access_token and self._expires_at and self._expires_at > datetime.now(UTC) + self._buffer:
            return self._access_token
        return await self.refresh_access_token()

    async def refresh_access_token(self) -> str:
        """Force a refresh-token grant.

        Raises:
            CredentialError: If the token endpoint returns an error.
        """
        async with httpx.AsyncClient(timeout=self._request_timeout) as client:
            try:
                response = await client.post(
                    self._token_url,
                    data={
                        "grant_type": "refresh_token",
                        "refresh_token": self._refresh_token,
                        "client_id": self._client_id,
                        "client_secret": self._client_secret,
                    },
                )
            except httpx.HTTPError as exc:
                raise CredentialError(f"Token refresh request failed: {exc}") from exc
            if response.status_code != 200:
                raise CredentialError(f"Token refresh failed: HTTP {response.status_code}")

        try:
            data = response.json()
            access_token: str = data["access_token"]
            expires_in = int(data.get("expires_in", 3600))
        except (KeyError, TypeError, ValueError) as exc:
            raise CredentialError("Token refresh response did not include an access token") from exc

        self._access_token = access_token
        self._expires_at = datetime.now(UTC) + timedelta(seconds=expires_in)
        if data.get("refresh_token"):
            self._refresh_token = data["refresh_token"]
        logger.info("Refreshed Spotify access token (expires in %ds)", expires_in)
        return access_token

    async def test_token(self, token: str) -> bool:
        """Check the token against ``GET /v1/me``."""
        try:
            user = await SpotifyClient(token, max_retries=0, request_timeout=self._request_timeout).get_current_user()
        except (SpotifyClientError, httpx.HTTPError) as exc:
            logger.warning("Spotify token test failed: %s", exc)
            return False
        logger.debug("Spotify token valid for user %s", user.id)
        return True


def resolve_credential_provider(settings: PipelineSettings) -> RefreshTokenProvider | None:
    """A provider built from the environment, or None when credentials are incomplete."""
    if not settings.has_spotify_credentials:
        return None
    return RefreshTokenProvider(
        settings.SPOTIFY_CLIENT_ID,
        settings.SPOTIFY_CLIENT_SECRET,
        settings.SPOTIFY_REFRESH_TOKEN,
        expiry_buffer_seconds=settings.TOKEN_EXPIRY_BUFFER_SECONDS,
    )


async def connect_spotify(
    provider: CredentialProvider | None,
    settings: PipelineSettings,
    *,
    sleep: SleepFunc = asyncio.sleep,
) -> SpotifyClient | None:
    """Build an API client, or None when no working credential is available."""
    if provider is None:
        logger.info(
            "Spotify credentials not configured; set SPOTIFY_CLIENT_ID, SPOTIFY_CLIENT_SECRET "
            "and SPOTIFY_REFRESH_TOKEN to enable API access"
        )
        return None
    try:
        token = await provider.get_valid_access_token()
        valid = await provider.test_token(token)
    except (CredentialError, httpx.HTTPError) as exc:
        logger.warning("Spotify credentials unavailable: %s", exc)
        return None
    if not valid:
        logger.warning("Spotify access token was rejected")
        return None

    async def refresh() -> str:
        try:
            return await provider.refresh_access_token()
        except CredentialError as exc:
            raise SpotifyAuthError(str(exc)) from exc

    return SpotifyClient(
        token,
        on_token_expired=refresh,
        max_retries=settings.SPOTIFY_MAX_RETRIES,
        retry_base_delay=settings.SPOTIFY_RETRY_BASE_DELAY,
        max_retry_delay=settings.SPOTIFY_MAX_RETRY_DELAY,
        batch_pause=settings.SPOTIFY_BATCH_PAUSE,
        sleep=sleep,
    )
