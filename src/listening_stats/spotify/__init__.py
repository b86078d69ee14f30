"""Spotify API client and models."""

from listening_stats.spotify.client import SpotifyClient
from listening_stats.spotify.exceptions import (
    SpotifyAuthError,
    SpotifyClientError,
    SpotifyRateLimitError,
    SpotifyRequestError,
    SpotifyResponseError,
    SpotifyServerError,
)

__all__ = [
    "SpotifyClient",
    "SpotifyAuthError",
    "SpotifyClientError",
    "SpotifyRateLimitError",
    "SpotifyRequestError",
    "SpotifyResponseError",
    "SpotifyServerError",
]
