"""Snapshot store: timestamped JSON generations for history, recent plays and outputs."""

from listening_stats.store.exceptions import SnapshotCorruptError, SnapshotError, SnapshotWriteError
from listening_stats.store.history import HistoryStore, RecentPlaysStore
from listening_stats.store.outputs import CleanedOutputStore, OutputGeneration, PreviousOutputs
from listening_stats.store.snapshots import Snapshot, SnapshotStore

__all__ = [
    "CleanedOutputStore",
    "HistoryStore",
    "OutputGeneration",
    "PreviousOutputs",
    "RecentPlaysStore",
    "Snapshot",
    "SnapshotCorruptError",
    "SnapshotError",
    "SnapshotStore",
    "SnapshotWriteError",
]
