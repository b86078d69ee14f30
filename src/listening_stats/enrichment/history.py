"""Fill-only Spotify metadata for the songs of the cumulative history.

Plays collected from the recently-played endpoint carry full track objects,
but songs from older imports can lack the album ID, album art, links or
duration. Those gaps are filled from a track lookup; values already present
are never replaced and listening events are never touched.
"""

import logging
from dataclasses import dataclass

from listening_stats.enrichment.fill import fill_empty
from listening_stats.history.models import ListeningHistory, SongAggregate
from listening_stats.spotify.client import SpotifyClient

logger = logging.getLogger(__name__)


def has_metadata(song: SongAggregate) -> bool:
    return bool(song.album.id and song.album.images and song.external_urls and song.duration_ms)


@dataclass(slots=True)
class HistoryEnrichmentReport:
    candidates: int = 0
    found: int = 0
    enriched: int = 0


async def enrich_history(history: ListeningHistory, client: SpotifyClient) -> HistoryEnrichmentReport:
    """Fill empty album ID, album images, links and duration on ``history`` in place.

    Songs without a track ID cannot be looked up and are left as they are.
    """
    report = HistoryEnrichmentReport()
    needing = [song for song in history.songs if song.song_id and not has_metadata(song)]
    report.candidates = len(needing)
    if not needing:
        logger.info("All %d history songs already have metadata, skipping API calls", len(history.songs))
        return report

    tracks = await client.fetch_tracks([song.song_id for song in needing])
    for song in needing:
        track = tracks.get(song.song_id)
        if track is None:
            continue
        report.found += 1
        filled = fill_empty(song, duration_ms=track.duration_ms, external_urls=track.external_urls)
        if track.album:
            filled += fill_empty(song.album, id=track.album.id, images=track.album.images)
        if filled:
            report.enriched += 1
            logger.debug("Filled %s for %r", ", ".join(filled), song.name)

    logger.info(
        "History enrichment: %d of %d songs needed metadata, %d found, %d enriched",
        report.candidates,
        len(history.songs),
        report.found,
        report.enriched,
    )
    return report
