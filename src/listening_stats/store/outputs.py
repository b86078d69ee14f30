"""The cleaned-data output files, written as one generation.

A generation is the four ranked files plus the detailed statistics file.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError

from listening_stats.constants import ALBUMS_WITH_SONGS_SOURCE, MERGED_HISTORY_SOURCE, Snapshots
from listening_stats.rankings.models import (
    AlbumWithSongs,
    ProjectionResult,
    RankedAlbum,
    RankedArtist,
    RankedSong,
)
from listening_stats.rankings.projections import Projections
from listening_stats.rankings.stats import DetailedStats
from listening_stats.store.exceptions import SnapshotError, SnapshotWriteError
from listening_stats.store.snapshots import Snapshot, SnapshotStore, current_unix_ms, dump_json
from listening_stats.timestamps import format_timestamp, utc_now

logger = logging.getLogger(__name__)


def consolidation_rate(original: int, consolidated: int) -> float:
    """Percentage of rows removed by consolidation, rounded to 2 decimals."""
    if original <= 0:
        return 0.0
    return round((original - consolidated) / original * 100, 2)


def output_metadata(
    noun: str,
    result: ProjectionResult,
    *,
    source: str,
    total_listening_events: int,
    generated_at: datetime,
) -> dict[str, Any]:
    """Metadata block of one output file; ``noun`` is ``Songs``, ``Albums`` or ``Artists``."""
    return {
        f"originalTotal{noun}": result.original_count,
        f"consolidatedTotal{noun}": result.consolidated_count,
        "duplicatesRemoved": result.duplicates_removed,
        "consolidationRate": consolidation_rate(result.original_count, result.consolidated_count),
        "timestamp": format_timestamp(generated_at),
        "source": source,
        "totalListeningEvents": total_listening_events,
    }


@dataclass(slots=True)
class PreviousOutputs:
    """Rows of the previous generation, used to carry enrichment forward."""

    songs: list[RankedSong] = field(default_factory=list)
    albums: list[RankedAlbum] = field(default_factory=list)
    artists: list[RankedArtist] = field(default_factory=list)
    albums_with_songs: list[AlbumWithSongs] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class OutputGeneration:
    timestamp_ms: int
    songs: Snapshot
    albums: Snapshot
    artists: Snapshot
    albums_with_songs: Snapshot
    detailed_stats: Snapshot


class CleanedOutputStore:
    """Cleaned-songs, -albums, -artists, -albums-with-songs and detailed-stats generations.

    A generation is written with one shared timestamp. Older generations are
    deleted only after every file of the new one has been written.
    """

    def __init__(self, directory: Path, *, clock: Callable[[], int] = current_unix_ms) -> None:
        self.directory = directory
        self.clock = clock
        self.songs = SnapshotStore(directory, Snapshots.CLEANED_SONGS)
        self.albums = SnapshotStore(directory, Snapshots.CLEANED_ALBUMS)
        self.artists = SnapshotStore(directory, Snapshots.CLEANED_ARTISTS)
        self.albums_with_songs = SnapshotStore(directory, Snapshots.CLEANED_ALBUMS_WITH_SONGS)
        self.detailed_stats = SnapshotStore(directory, Snapshots.DETAILED_STATS)

    @property
    def _stores(self) -> tuple[SnapshotStore, ...]:
        return (self.songs, self.albums, self.artists, self.albums_with_songs, self.detailed_stats)

    # --- Reading the previous generation ---

    def _load_rows(self, store: SnapshotStore, key: str, model: type[BaseModel]) -> list:
        snapshot = store.latest()
        if snapshot is None:
            return []
        try:
            data = store.read_json(snapshot)
            return [model.model_validate(row) for row in data.get(key) or []]
        except (SnapshotError, ValidationError, AttributeError) as exc:
            logger.warning("Could not load previous output %s for metadata reuse: %s", snapshot.path.name, exc)
            return []

    def load_previous(self) -> PreviousOutputs:
        """Latest rows of each category. An unreadable previous file is skipped."""
        previous = PreviousOutputs(
            songs=self._load_rows(self.songs, "songs", RankedSong),
            albums=self._load_rows(self.albums, "albums", RankedAlbum),
            artists=self._load_rows(self.artists, "artists", RankedArtist),
            albums_with_songs=self._load_rows(self.albums_with_songs, "albums", AlbumWithSongs),
        )
        logger.info(
            "Previous outputs: %d songs, %d albums, %d artists, %d albums with songs",
            len(previous.songs),
            len(previous.albums),
            len(previous.artists),
            len(previous.albums_with_songs),
        )
        return previous

    # --- Writing a generation ---

    def _free_timestamp(self) -> int:
        timestamp = self.clock()
        while any(store.path_for(timestamp).exists() for store in self._stores):
            timestamp += 1
        return timestamp

    def save(
        self,
        projections: Projections,
        *,
        detailed_stats: DetailedStats,
        total_listening_events: int,
        generated_at: datetime | None = None,
    ) -> OutputGeneration:
        """Write all five files, then retire older generations.

        Raises:
            SnapshotWriteError: A file could not be written. Files already
                written for this generation are removed and older generations
                are left in place.
        """
        generated_at = generated_at or utc_now()
        previous = [snapshot for store in self._stores for snapshot in store.snapshots()]

        def payload(noun: str, key: str, result: ProjectionResult, source: str) -> dict[str, Any]:
            return {
                "metadata": output_metadata(
                    noun,
                    result,
                    source=source,
                    total_listening_events=total_listening_events,
                    generated_at=generated_at,
                ),
                key: [row.to_json_dict() for row in result.items],
            }

        files = [
            (self.songs, payload("Songs", "songs", projections.songs, MERGED_HISTORY_SOURCE)),
            (self.albums, payload("Albums", "albums", projections.albums, MERGED_HISTORY_SOURCE)),
            (self.artists, payload("Artists", "artists", projections.artists, MERGED_HISTORY_SOURCE)),
            (
                self.albums_with_songs,
                payload("Albums", "albums", projections.albums_with_songs, ALBUMS_WITH_SONGS_SOURCE),
            ),
            (self.detailed_stats, detailed_stats.to_json_dict()),
        ]

        self.directory.mkdir(parents=True, exist_ok=True)
        timestamp = self._free_timestamp()
        written: list[Snapshot] = []
        for store, body in files:
            path = store.path_for(timestamp)
            try:
                with path.open("x", encoding="utf-8") as f:
                    f.write(dump_json(body))
            except OSError as exc:
                if not isinstance(exc, FileExistsError):
                    path.unlink(missing_ok=True)
                store.remove(written)
                raise SnapshotWriteError(path, str(exc)) from exc
            written.append(Snapshot(path, timestamp))

        removed = self.songs.remove(previous)
        if removed:
            logger.info("Cleaned up %d old cleaned data file(s)", removed)
        for snapshot in written:
            logger.info("Wrote %s", snapshot.path)

        return OutputGeneration(timestamp, *written)
