"""Tests for SnapshotStore."""

from pathlib import Path

import pytest

from listening_stats.constants import Snapshots
from listening_stats.store.exceptions import SnapshotCorruptError
from listening_stats.store.snapshots import SnapshotStore


def test_latest_uses_numeric_timestamp(tmp_path: Path) -> None:
    """The newest generation is chosen by number, not by file name order."""
    for ts in (9, 10, 2):
        (tmp_path / f"merged-streaming-history-{ts}.json").write_text("{}", encoding="utf-8")
    (tmp_path / "merged-streaming-history-latest.json").write_text("{}", encoding="utf-8")
    (tmp_path / "cleaned-songs-99.json").write_text("{}", encoding="utf-8")

    store = SnapshotStore(tmp_path, Snapshots.MERGED_HISTORY)

    assert [s.timestamp_ms for s in store.snapshots()] == [2, 9, 10]
    assert store.latest().timestamp_ms == 10


def test_missing_directory_has_no_snapshots(tmp_path: Path) -> None:
    """Absence is not an error."""
    store = SnapshotStore(tmp_path / "nowhere", Snapshots.CLEANED_SONGS)

    assert store.snapshots() == []
    assert store.latest() is None


def test_write_never_overwrites(tmp_path: Path) -> None:
    """A name collision bumps the timestamp instead of overwriting."""
    store = SnapshotStore(tmp_path / "out", Snapshots.CLEANED_SONGS, clock=lambda: 1000)

    first = store.write_json({"n": 1})
    second = store.write_json({"n": 2})

    assert first.timestamp_ms == 1000
    assert second.timestamp_ms == 1001
    assert store.read_json(first) == {"n": 1}
    assert store.read_json(second) == {"n": 2}


def test_write_keeps_unicode(tmp_path: Path) -> None:
    """Non-ASCII names are written as-is."""
    store = SnapshotStore(tmp_path, Snapshots.CLEANED_ARTISTS, clock=lambda: 5)

    snapshot = store.write_json({"name": "Sigur Rós"})

    assert "Sigur Rós" in snapshot.path.read_text(encoding="utf-8")


def test_corrupt_snapshot_raises(tmp_path: Path) -> None:
    """Malformed JSON is reported as a corrupt snapshot."""
    (tmp_path / "cleaned-albums-1.json").write_text("{oops", encoding="utf-8")
    store = SnapshotStore(tmp_path, Snapshots.CLEANED_ALBUMS)

    with pytest.raises(SnapshotCorruptError, match="cleaned-albums-1.json"):
        store.read_json(store.latest())


def test_remove(tmp_path: Path) -> None:
    """Removing counts only files that existed."""
    store = SnapshotStore(tmp_path, Snapshots.RECENT_PLAYS, clock=lambda: 1)
    snapshot = store.write_json([])

    assert store.remove([snapshot]) == 1
    assert store.remove([snapshot]) == 0
    assert store.latest() is None
