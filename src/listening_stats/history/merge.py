"""History merge engine: folds a batch of recent plays into the cumulative history."""

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from listening_stats.constants import MERGED_HISTORY_SOURCE
from listening_stats.history.models import ListeningEvent, ListeningHistory, PlayEvent, SongAggregate
from listening_stats.history.normalizers import song_from_play
from listening_stats.identity import SongKey
from listening_stats.timestamps import format_timestamp, parse_timestamp, utc_now

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class MergeReport:
    """Counters describing one merge."""

    plays_received: int = 0
    duplicate_events_removed: int = 0
    duplicate_plays_skipped: int = 0
    songs_updated: int = 0
    songs_added: int = 0
    total_songs: int = 0

    @property
    def has_changes(self) -> bool:
        return bool(self.songs_added or self.songs_updated or self.duplicate_events_removed)


def merge_recent_plays(
    history: ListeningHistory,
    plays: Iterable[PlayEvent],
    *,
    now: datetime | None = None,
) -> tuple[ListeningHistory, MergeReport]:
    """Merge ``plays`` into ``history`` and return the new history with a report.

    The input history is not modified. Songs are matched by ``SongKey``
    (name + primary artist); a play whose ``played_at`` is already recorded
    for its song is skipped, which makes the merge idempotent. Plays are
    processed in a total order (see ``_play_order``) so the result depends
    only on which plays were delivered, not on their order.
    """
    merged = history.model_copy(deep=True)
    ordered_plays = sorted(plays, key=_play_order)
    report = MergeReport(plays_received=len(ordered_plays))

    index: dict[SongKey, SongAggregate] = {}
    for song in merged.songs:
        index.setdefault(song.key, song)
        report.duplicate_events_removed += song.dedupe_events()

    if report.duplicate_events_removed:
        logger.info("Cleaned up %d duplicate listening events from existing history", report.duplicate_events_removed)

    added_keys: set[SongKey] = set()
    updated_keys: set[SongKey] = set()

    for play in ordered_plays:
        key = play.key
        song = index.get(key)

        if song is None:
            song = song_from_play(play)
            index[key] = song
            merged.songs.append(song)
            added_keys.add(key)
            logger.debug("Added new song: %r by %s", play.name, play.primary_artist)
            continue

        if song.has_event(play.played_at):
            report.duplicate_plays_skipped += 1
            logger.debug("Skipped duplicate play of %r at %s", play.name, play.played_at)
            continue

        song.listening_events.append(ListeningEvent(played_at=play.played_at, ms_played=play.duration_ms))
        if song.duration_ms == 0 and play.duration_ms > 0:
            song.duration_ms = play.duration_ms
        song.recompute_totals()
        if key not in added_keys:
            updated_keys.add(key)

    report.songs_added = len(added_keys)
    report.songs_updated = len(updated_keys)
    report.total_songs = len(merged.songs)

    _refresh_metadata(merged, now or utc_now())

    logger.info(
        "Merge summary: %d plays received, %d songs updated, %d songs added, %d duplicates skipped, %d songs total",
        report.plays_received,
        report.songs_updated,
        report.songs_added,
        report.duplicate_plays_skipped,
        report.total_songs,
    )
    return merged, report


def _play_order(play: PlayEvent) -> tuple[str, int, str, str]:
    """Sort key that orders every pair of distinct plays.

    Copies of the same play sort with the longest duration first, so the copy
    that seeds a song or records the event is the most complete one.
    """
    return (
        play.played_at,
        -play.duration_ms,
        play.track_id,
        json.dumps(play.to_json_dict(), sort_keys=True),
    )


def _refresh_metadata(history: ListeningHistory, now: datetime) -> None:
    """Recompute the summary block from the songs."""
    metadata = history.metadata
    metadata.total_songs = len(history.songs)
    metadata.total_listening_events = sum(len(song.listening_events) for song in history.songs)
    metadata.total_listening_time = sum(song.total_listening_time_ms for song in history.songs)

    played_at = [
        parsed
        for song in history.songs
        for event in song.listening_events
        if (parsed := parse_timestamp(event.played_at)) is not None
    ]
    if played_at:
        metadata.date_range.earliest = format_timestamp(min(played_at))
        metadata.date_range.latest = format_timestamp(max(played_at))

    metadata.source = MERGED_HISTORY_SOURCE
    metadata.last_updated = format_timestamp(now)
