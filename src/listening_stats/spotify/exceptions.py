"""Spotify API client exceptions.

Every error names the API path it came from (``/v1/tracks`` and so on) so a
skipped enrichment batch can be traced back to its endpoint in the logs.
"""


class SpotifyClientError(Exception):
    """Base exception for Spotify client errors."""

    def __init__(self, message: str, *, endpoint: str = "") -> None:
        self.endpoint = endpoint
        super().__init__(f"{endpoint}: {message}" if endpoint else message)


class SpotifyAuthError(SpotifyClientError):
    """Spotify returned 401 Unauthorized and token refresh did not resolve it."""


class SpotifyRateLimitError(SpotifyClientError):
    """Spotify kept returning 429 Too Many Requests until retries were exhausted."""

    def __init__(self, *, endpoint: str = "", retry_after: float | None = None, attempts: int = 0) -> None:
        self.retry_after = retry_after
        self.attempts = attempts
        msg = "rate limited"
        if attempts:
            msg += f" on all {attempts} attempts"
        if retry_after is not None:
            msg += f", last Retry-After {retry_after:g}s"
        super().__init__(msg, endpoint=endpoint)


class SpotifyServerError(SpotifyClientError):
    """Spotify kept answering with 5xx until retries were exhausted."""

    def __init__(self, status_code: int, *, endpoint: str = "", attempts: int = 0) -> None:
        self.status_code = status_code
        self.attempts = attempts
        super().__init__(f"HTTP {status_code} after {attempts} attempts", endpoint=endpoint)


class SpotifyRequestError(SpotifyClientError):
    """A non-retryable client error (4xx other than 401/429)."""

    def __init__(self, status_code: int, detail: str = "", *, endpoint: str = "") -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"HTTP {status_code}" + (f" ({detail})" if detail else ""), endpoint=endpoint)


class SpotifyResponseError(SpotifyClientError):
    """A 2xx response whose body is not JSON or not the expected shape."""
