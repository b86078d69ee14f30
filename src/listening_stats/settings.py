"""Pipeline configuration loaded from environment variables."""

from pathlib import Path

from pydantic_settings import BaseSettings

from listening_stats.constants import (
    CLEANED_DATA_DIRNAME,
    COMPLETE_HISTORY_DIRNAME,
    DEFAULT_ALBUMS_WITH_SONGS_LIMIT,
    DEFAULT_MOVEMENT_WINDOW_DAYS,
    DEFAULT_TOP_LIMIT,
    MERGED_HISTORY_DIRNAME,
)
from listening_stats.spotify.constants import (
    DEFAULT_BATCH_PAUSE,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MAX_RETRY_DELAY,
    DEFAULT_RETRY_BASE_DELAY,
)


class PipelineSettings(BaseSettings):
    """Listening-stats pipeline configuration."""

    # Spotify credentials
    SPOTIFY_CLIENT_ID: str = ""
    SPOTIFY_CLIENT_SECRET: str = ""
    SPOTIFY_REFRESH_TOKEN: str = ""
    TOKEN_EXPIRY_BUFFER_SECONDS: int = 60

    # Storage
    DATA_DIR: str = "data"
    TEMP_DIR: str = "temp"
    CONSOLIDATION_RULES_PATH: str = ""

    # Projections
    TOP_SONGS_LIMIT: int = DEFAULT_TOP_LIMIT
    TOP_ALBUMS_LIMIT: int = DEFAULT_TOP_LIMIT
    TOP_ARTISTS_LIMIT: int = DEFAULT_TOP_LIMIT
    ALBUMS_WITH_SONGS_LIMIT: int = DEFAULT_ALBUMS_WITH_SONGS_LIMIT
    MOVEMENT_WINDOW_DAYS: int = DEFAULT_MOVEMENT_WINDOW_DAYS

    # Recently played
    RECENT_PLAYS_LIMIT: int = 50
    CHECK_PLAYS_LIMIT: int = 10

    # Spotify API retry behaviour
    SPOTIFY_MAX_RETRIES: int = DEFAULT_MAX_RETRIES
    SPOTIFY_RETRY_BASE_DELAY: float = DEFAULT_RETRY_BASE_DELAY
    SPOTIFY_MAX_RETRY_DELAY: float = DEFAULT_MAX_RETRY_DELAY
    SPOTIFY_BATCH_PAUSE: float = DEFAULT_BATCH_PAUSE

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"

    model_config = {"env_prefix": ""}

    @property
    def has_spotify_credentials(self) -> bool:
        return bool(self.SPOTIFY_CLIENT_ID and self.SPOTIFY_CLIENT_SECRET and self.SPOTIFY_REFRESH_TOKEN)

    @property
    def merged_history_dir(self) -> Path:
        return Path(self.DATA_DIR) / MERGED_HISTORY_DIRNAME

    @property
    def complete_history_dir(self) -> Path:
        return Path(self.DATA_DIR) / COMPLETE_HISTORY_DIRNAME

    @property
    def cleaned_data_dir(self) -> Path:
        return Path(self.DATA_DIR) / CLEANED_DATA_DIRNAME

    @property
    def temp_dir(self) -> Path:
        return Path(self.TEMP_DIR)

    @property
    def consolidation_rules_path(self) -> Path | None:
        return Path(self.CONSOLIDATION_RULES_PATH) if self.CONSOLIDATION_RULES_PATH else None
