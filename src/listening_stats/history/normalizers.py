"""Normalizers that turn raw play records and older snapshots into history models."""

import logging
from typing import Any

from pydantic import ValidationError

from listening_stats.constants import UNKNOWN_ARTIST
from listening_stats.history.models import (
    AlbumRef,
    ArtistInfo,
    ListeningEvent,
    ListeningHistory,
    PlayEvent,
    SongAggregate,
)
from listening_stats.spotify.models import SpotifyPlayHistoryItem

logger = logging.getLogger(__name__)


def normalize_recent_play(raw: dict[str, Any]) -> PlayEvent | None:
    """Normalize one record of a raw recent-plays batch.

    Expected fields:
        id: str (Spotify track ID)
        name: str
        artists: list[str] (primary artist first)
        album: {id, name, images}
        duration_ms: int
        played_at: str (ISO 8601)
        external_urls: {spotify: str}
        preview_url: str | None

    Returns None if the record has no track name or no ``played_at``.
    """
    name = raw.get("name")
    played_at = raw.get("played_at")
    if not name or not isinstance(played_at, str) or not played_at:
        return None

    duration_ms = raw.get("duration_ms", 0)
    if not isinstance(duration_ms, int) or duration_ms < 0:
        duration_ms = 0

    artists = [str(a) for a in raw.get("artists") or [] if a]

    try:
        return PlayEvent.model_validate(
            {
                **raw,
                "name": str(name),
                "artists": artists,
                "duration_ms": duration_ms,
                "album": raw.get("album") or {},
                "external_urls": raw.get("external_urls") or {},
            }
        )
    except ValidationError as exc:
        logger.warning("Skipping malformed recent play %r: %s", name, exc.errors()[0].get("msg"))
        return None


def play_event_from_history_item(item: SpotifyPlayHistoryItem) -> PlayEvent:
    """Flatten a recently-played API item into the raw recent-play shape."""
    track = item.track
    album = track.album
    return PlayEvent(
        track_id=track.id or "",
        name=track.name,
        artists=[artist.name for artist in track.artists],
        album=AlbumRef(
            id=(album.id or "") if album else "",
            name=album.name if album else "",
            images=list(album.images) if album else [],
        ),
        duration_ms=track.duration_ms or 0,
        played_at=item.played_at,
        external_urls=dict(track.external_urls),
        preview_url=track.preview_url,
    )


def song_from_play(play: PlayEvent) -> SongAggregate:
    """Seed a new history song from its first observed play.

    Genres are unknown at this point: play events do not carry them.
    """
    song = SongAggregate(
        song_id=play.track_id,
        name=play.name,
        duration_ms=play.duration_ms,
        artists=list(play.artists),
        album=play.album.model_copy(deep=True),
        artist=ArtistInfo(name=play.primary_artist or UNKNOWN_ARTIST, genres=[]),
        external_urls=dict(play.external_urls),
        preview_url=play.preview_url,
        listening_events=[ListeningEvent(played_at=play.played_at, ms_played=play.duration_ms)],
    )
    song.recompute_totals()
    return song


def upgrade_history_payload(data: dict[str, Any]) -> ListeningHistory:
    """Validate a history snapshot, upgrading the older enriched-history shape.

    The older shape reports ``metadata.totalPlayEvents`` and no total listening
    time; current snapshots carry ``totalListeningEvents`` and
    ``totalListeningTime``. Missing totals are computed from the songs.

    Raises:
        ValidationError: If the payload is not a history snapshot.
    """
    history = ListeningHistory.model_validate(data)
    raw_metadata = data.get("metadata") or {}
    metadata = history.metadata

    legacy_events = raw_metadata.get("totalPlayEvents")
    if legacy_events is not None:
        logger.info("Upgrading legacy history snapshot (totalPlayEvents=%s)", legacy_events)
        metadata.total_listening_events = int(legacy_events)
        metadata.total_listening_time = sum(song.total_listening_time_ms for song in history.songs)
        extras = metadata.model_extra
        if extras is not None:
            extras.pop("totalPlayEvents", None)
    elif "totalListeningEvents" not in raw_metadata:
        metadata.total_listening_events = sum(len(song.listening_events) for song in history.songs)

    if "totalSongs" not in raw_metadata:
        metadata.total_songs = len(history.songs)
    return history
