"""Centralized constants for the listening-stats pipeline."""

import enum
import re
from dataclasses import dataclass

# --- Service identity ---


class JobName(enum.StrEnum):
    """Job names used for logging and the command line."""

    COLLECT = "collect"
    CHECK = "check"
    MERGE = "merge"
    GENERATE = "generate"
    ENRICH_HISTORY = "enrich-history"
    RUN = "run"


SERVICE_NAME = "listening-stats"


# --- Snapshot naming ---


@dataclass(frozen=True, slots=True)
class SnapshotKind:
    """A snapshot file prefix paired with the pattern that recognises it."""

    prefix: str
    pattern: re.Pattern[str]

    def filename(self, timestamp_ms: int) -> str:
        return f"{self.prefix}-{timestamp_ms}.json"


def _kind(prefix: str) -> SnapshotKind:
    return SnapshotKind(prefix, re.compile(rf"^{re.escape(prefix)}-(\d+)\.json$"))


class Snapshots:
    """Snapshot kinds: single source of truth for file naming."""

    MERGED_HISTORY = _kind("merged-streaming-history")
    COMPLETE_HISTORY = _kind("complete-listening-history")
    RECENT_PLAYS = _kind("temp-recent-plays")
    CLEANED_SONGS = _kind("cleaned-songs")
    CLEANED_ALBUMS = _kind("cleaned-albums")
    CLEANED_ARTISTS = _kind("cleaned-artists")
    CLEANED_ALBUMS_WITH_SONGS = _kind("cleaned-albums-with-songs")
    DETAILED_STATS = _kind("detailed-stats")


MERGED_HISTORY_DIRNAME = "merged-streaming-history"
COMPLETE_HISTORY_DIRNAME = "complete-listening-history"
CLEANED_DATA_DIRNAME = "cleaned-data"

# --- Sources ---

MERGED_HISTORY_SOURCE = "Merged Streaming History"
ALBUMS_WITH_SONGS_SOURCE = "Merged Streaming History with Song Breakdown"

# --- Projection defaults ---

DEFAULT_TOP_LIMIT = 500
DEFAULT_ALBUMS_WITH_SONGS_LIMIT = 100
DEFAULT_MOVEMENT_WINDOW_DAYS = 30
ARTIST_BREAKDOWN_SIZE = 5
STATS_TOP_SIZE = 5

UNKNOWN_ARTIST = "Unknown Artist"
UNKNOWN_ALBUM = "Unknown Album"


# --- Process exit codes ---


class ExitCode(enum.IntEnum):
    SUCCESS = 0
    FAILURE = 1


# New-data check: 0 tells the caller to continue, 1 to skip the rest of the workflow
NEW_DATA_FOUND = 0
NO_NEW_DATA = 1
