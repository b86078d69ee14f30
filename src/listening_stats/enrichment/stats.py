"""Images for the per-year top lists of the detailed statistics.

Top songs and albums keep the album art they were built with and only gain
images when they have none. Top artists start out with album art standing
in for a photo; an artist photo, when one is known, replaces it.
"""

import logging
from collections.abc import Mapping

from listening_stats.enrichment.fill import fill_empty
from listening_stats.identity import AlbumKey, ArtistKey
from listening_stats.rankings.projections import Projections
from listening_stats.rankings.stats import DetailedStats
from listening_stats.spotify.models import SpotifyImage

logger = logging.getLogger(__name__)


def artist_photos(projections: Projections) -> dict[ArtistKey, list[SpotifyImage]]:
    return {row.key: row.artist.images for row in projections.artists.items if row.artist.images}


def apply_stats_images(
    stats: DetailedStats,
    projections: Projections,
    photos: Mapping[ArtistKey, list[SpotifyImage]] | None = None,
) -> int:
    """Copy images from the ranked rows onto ``stats``; returns the number of entries changed."""
    photos = artist_photos(projections) if photos is None else photos
    song_art = {row.song_id: row.album.images for row in projections.songs.items if row.album.images}
    album_art: dict[AlbumKey, list[SpotifyImage]] = {}
    for row in [*projections.albums_with_songs.items, *projections.albums.items]:
        if row.album.images:
            album_art.setdefault(row.key, row.album.images)

    changed = 0
    for year in stats.yearly_top_items:
        for artist in year.top_artists:
            images = photos.get(ArtistKey.of(artist.artist_name))
            if images and artist.images != images:
                artist.images = list(images)
                changed += 1
        for song in year.top_songs:
            changed += bool(fill_empty(song, images=song_art.get(song.song_id)))
        for album in year.top_albums:
            changed += bool(fill_empty(album, images=album_art.get(AlbumKey.of(album.album_name, album.artist))))

    if changed:
        logger.info("Filled images for %d detailed-stats entries", changed)
    return changed
