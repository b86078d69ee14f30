"""Tests for the merge job."""

import pytest

from listening_stats.constants import ExitCode, Snapshots
from listening_stats.jobs.merge import merge_pending_plays
from listening_stats.store.exceptions import SnapshotCorruptError
from listening_stats.store.history import HistoryStore, RecentPlaysStore
from listening_stats.store.snapshots import SnapshotStore


def test_nothing_pending(settings) -> None:
    """No recent plays is a successful no-op."""
    assert merge_pending_plays(settings) == ExitCode.SUCCESS
    assert HistoryStore(settings.merged_history_dir).latest() is None


def test_merges_pending_batches_and_removes_them(settings, make_play, make_history, now) -> None:
    """All pending batches are merged into a new generation and then deleted."""
    history_store = HistoryStore(settings.merged_history_dir, clock=lambda: 1)
    history_store.save(make_history([make_play(played_at="2024-05-01T10:00:00.000Z")]))
    recent = RecentPlaysStore(settings.temp_dir, clock=lambda: 10)
    recent.save([make_play(played_at="2024-05-02T10:00:00.000Z")])
    recent.save([make_play("Track B", "Artist B", "2024-05-03T10:00:00.000Z", track_id="track-b")])

    assert merge_pending_plays(settings, now=now) == ExitCode.SUCCESS

    snapshots = HistoryStore(settings.merged_history_dir).merged.snapshots()
    assert len(snapshots) == 2
    history = HistoryStore(settings.merged_history_dir).load_latest()
    assert {s.name: s.play_count for s in history.songs} == {"Track A": 2, "Track B": 1}
    assert recent.pending() == []


def test_without_history_leaves_batches_pending(settings, make_play, now) -> None:
    """Without any history nothing is written and the pending batches are kept."""
    recent = RecentPlaysStore(settings.temp_dir)
    batch = recent.save([make_play()])

    assert merge_pending_plays(settings, now=now) == ExitCode.SUCCESS

    assert HistoryStore(settings.merged_history_dir, settings.complete_history_dir).latest() is None
    assert recent.pending() == [batch]


def test_merges_into_legacy_history(settings, make_play, make_history, now) -> None:
    """A history found only in the legacy directory is merged into a new merged generation."""
    SnapshotStore(settings.complete_history_dir, Snapshots.COMPLETE_HISTORY, clock=lambda: 1).write_json(
        make_history([make_play()]).to_json_dict()
    )
    RecentPlaysStore(settings.temp_dir).save([make_play(played_at="2024-05-31T09:00:00.000Z")])

    assert merge_pending_plays(settings, now=now) == ExitCode.SUCCESS

    history = HistoryStore(settings.merged_history_dir).load_latest()
    assert history.songs[0].play_count == 2


def test_replayed_batch_writes_no_new_generation(settings, make_play, make_history, now) -> None:
    """A batch already in the history is consumed without a new history file."""
    HistoryStore(settings.merged_history_dir, clock=lambda: 1).save(make_history([make_play()]))
    recent = RecentPlaysStore(settings.temp_dir)
    recent.save([make_play()])

    assert merge_pending_plays(settings, now=now) == ExitCode.SUCCESS

    assert len(HistoryStore(settings.merged_history_dir).merged.snapshots()) == 1
    assert recent.pending() == []


def test_corrupt_batch_is_fatal_and_kept(settings, make_play, make_history) -> None:
    """A malformed batch raises and nothing is deleted or written."""
    HistoryStore(settings.merged_history_dir, clock=lambda: 1).save(make_history([make_play()]))
    settings.temp_dir.mkdir(parents=True)
    bad = settings.temp_dir / "temp-recent-plays-1.json"
    bad.write_text("{not json", encoding="utf-8")

    with pytest.raises(SnapshotCorruptError):
        merge_pending_plays(settings)

    assert bad.exists()
    assert len(HistoryStore(settings.merged_history_dir).merged.snapshots()) == 1
