"""Merge job: fold every pending recent-play batch into a new history generation."""

import logging
from datetime import datetime

from listening_stats.constants import ExitCode
from listening_stats.history.merge import merge_recent_plays
from listening_stats.history.models import PlayEvent
from listening_stats.settings import PipelineSettings
from listening_stats.store.history import HistoryStore, RecentPlaysStore

logger = logging.getLogger(__name__)


def merge_pending_plays(settings: PipelineSettings, *, now: datetime | None = None) -> ExitCode:
    """Merge pending batches, oldest first, into the latest history.

    Consumed batches are deleted only after the history generation has been
    written. A batch that adds nothing new is still consumed. Without an
    existing history nothing is merged and the batches stay pending. A
    malformed batch or history raises ``SnapshotCorruptError`` and nothing
    is written.
    """
    recent = RecentPlaysStore(settings.temp_dir)
    pending = recent.pending()
    if not pending:
        logger.info("No recent plays to merge")
        return ExitCode.SUCCESS

    store = HistoryStore(settings.merged_history_dir, settings.complete_history_dir)
    history = store.load_latest()
    if history is None:
        logger.warning(
            "No existing history in %s, cannot merge %d pending batches; leaving them in place",
            settings.merged_history_dir,
            len(pending),
        )
        return ExitCode.SUCCESS

    plays: list[PlayEvent] = []
    for snapshot in pending:
        plays.extend(recent.load(snapshot))

    merged, report = merge_recent_plays(history, plays, now=now)
    logger.info(
        "Merged %d plays: %d songs updated, %d songs added, %d duplicate plays skipped",
        report.plays_received,
        report.songs_updated,
        report.songs_added,
        report.duplicate_plays_skipped,
    )

    if report.has_changes:
        snapshot = store.save(merged)
        logger.info("Saved merged history to %s (%d songs)", snapshot.path, report.total_songs)
    else:
        logger.info("History already contains every pending play, no new generation written")

    recent.discard(pending)
    return ExitCode.SUCCESS
