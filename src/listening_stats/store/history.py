"""Stores for the cumulative history and the raw recent-play batches."""

import logging
from collections.abc import Callable, Sequence
from pathlib import Path

from pydantic import ValidationError

from listening_stats.constants import Snapshots
from listening_stats.history.models import ListeningHistory, PlayEvent
from listening_stats.history.normalizers import normalize_recent_play, upgrade_history_payload
from listening_stats.store.exceptions import SnapshotCorruptError
from listening_stats.store.snapshots import Snapshot, SnapshotStore, current_unix_ms

logger = logging.getLogger(__name__)


class HistoryStore:
    """Merged-history generations, with the older complete-history directory as a read fallback.

    New generations are always written to the merged-history directory.
    History generations are never deleted by the pipeline.
    """

    def __init__(
        self,
        merged_dir: Path,
        legacy_dir: Path | None = None,
        *,
        clock: Callable[[], int] = current_unix_ms,
    ) -> None:
        self.merged = SnapshotStore(merged_dir, Snapshots.MERGED_HISTORY, clock=clock)
        self.legacy = SnapshotStore(legacy_dir, Snapshots.COMPLETE_HISTORY, clock=clock) if legacy_dir else None

    def latest(self) -> Snapshot | None:
        snapshot = self.merged.latest()
        if snapshot is None and self.legacy is not None:
            snapshot = self.legacy.latest()
            if snapshot is not None:
                logger.info("No merged history found, falling back to %s", snapshot.path)
        return snapshot

    def load(self, snapshot: Snapshot) -> ListeningHistory:
        """Load and upgrade a history snapshot.

        Raises:
            SnapshotCorruptError: The file is not a history snapshot.
        """
        data = self.merged.read_json(snapshot)
        if not isinstance(data, dict):
            raise SnapshotCorruptError(snapshot.path, "expected a JSON object with metadata and songs")
        try:
            history = upgrade_history_payload(data)
        except ValidationError as exc:
            raise SnapshotCorruptError(snapshot.path, str(exc)) from exc
        logger.info("Loaded history %s: %d songs", snapshot.path.name, len(history.songs))
        return history

    def load_latest(self) -> ListeningHistory | None:
        snapshot = self.latest()
        return self.load(snapshot) if snapshot else None

    def save(self, history: ListeningHistory) -> Snapshot:
        return self.merged.write_json(history.to_json_dict())


class RecentPlaysStore:
    """Raw recently-played batches waiting to be merged."""

    def __init__(self, temp_dir: Path, *, clock: Callable[[], int] = current_unix_ms) -> None:
        self.store = SnapshotStore(temp_dir, Snapshots.RECENT_PLAYS, clock=clock)

    def pending(self) -> list[Snapshot]:
        return self.store.snapshots()

    def load(self, snapshot: Snapshot) -> list[PlayEvent]:
        """Load one batch, dropping records without a name or play time.

        Raises:
            SnapshotCorruptError: The file is not a JSON array.
        """
        data = self.store.read_json(snapshot)
        if not isinstance(data, list):
            raise SnapshotCorruptError(snapshot.path, "expected a JSON array of recent plays")

        plays: list[PlayEvent] = []
        for raw in data:
            play = normalize_recent_play(raw) if isinstance(raw, dict) else None
            if play is not None:
                plays.append(play)
        skipped = len(data) - len(plays)
        if skipped:
            logger.warning("Skipped %d unusable records in %s", skipped, snapshot.path.name)
        logger.info("Loaded %d recent plays from %s", len(plays), snapshot.path.name)
        return plays

    def save(self, plays: Sequence[PlayEvent]) -> Snapshot:
        return self.store.write_json([play.to_json_dict() for play in plays])

    def discard(self, snapshots: Sequence[Snapshot]) -> int:
        removed = self.store.remove(snapshots)
        if removed:
            logger.info("Removed %d merged recent-play file(s)", removed)
        return removed
