"""Copy metadata fetched in a previous run onto freshly built projections.

Rows are matched on their identity key first and on their raw ID second,
so entities enriched once are not fetched again.
"""

import logging
from collections.abc import Callable, Hashable, Iterable, Sequence
from typing import TypeVar

from listening_stats.enrichment.fill import fill_empty, fill_release
from listening_stats.identity import IdKind, normalize
from listening_stats.rankings.models import AlbumSong, AlbumWithSongs, RankedAlbum, RankedArtist, RankedSong
from listening_stats.rankings.projections import Projections
from listening_stats.store.outputs import PreviousOutputs

logger = logging.getLogger(__name__)

Row = TypeVar("Row")


def _index(rows: Iterable[Row], *keys: Callable[[Row], Hashable]) -> dict[Hashable, Row]:
    """Map every non-empty key of every row to the row; the first row wins."""
    index: dict[Hashable, Row] = {}
    for row in rows:
        for key_of in keys:
            key = key_of(row)
            if key:
                index.setdefault(key, row)
    return index


def _lookup(index: dict[Hashable, Row], *keys: Hashable) -> Row | None:
    for key in keys:
        if key and key in index:
            return index[key]
    return None


class CarryForward:
    """Indices over the previous generation's rows."""

    def __init__(self, previous: PreviousOutputs) -> None:
        self.songs = _index(previous.songs, lambda r: r.key, lambda r: r.song_id)
        self.albums = _index(
            [*previous.albums, *previous.albums_with_songs],
            lambda r: r.key,
            lambda r: r.primary_album_id,
        )
        self.artists = _index(previous.artists, lambda r: r.key, lambda r: r.primary_artist_id)
        self.album_songs: dict[Hashable, AlbumSong] = _index(
            (song for album in previous.albums_with_songs for song in album.songs),
            lambda s: s.song_id,
        )

    def apply(self, projections: Projections) -> int:
        """Carry metadata onto all four projections; returns the number of rows touched."""
        touched = (
            self.apply_songs(projections.songs.items)
            + self.apply_albums(projections.albums.items)
            + self.apply_albums(projections.albums_with_songs.items)
            + self.apply_artists(projections.artists.items)
        )
        self.apply_album_songs(projections.albums_with_songs.items)
        if touched:
            logger.info("Carried forward metadata for %d rows from the previous run", touched)
        return touched

    def apply_songs(self, rows: Sequence[RankedSong]) -> int:
        touched = 0
        for row in rows:
            previous = _lookup(self.songs, row.key, row.song_id)
            if previous is None:
                continue
            filled = fill_empty(
                row.song,
                preview_url=previous.song.preview_url,
                external_urls=previous.song.external_urls,
            )
            filled += fill_empty(row.album, images=previous.album.images)
            filled += fill_empty(row.artist, genres=previous.artist.genres)
            touched += bool(filled)
        return touched

    def apply_albums(self, rows: Sequence[RankedAlbum]) -> int:
        touched = 0
        for row in rows:
            previous = _lookup(self.albums, row.key, row.primary_album_id)
            if previous is None:
                continue
            info, old = row.album, previous.album
            filled = fill_empty(
                info,
                images=old.images,
                external_urls=old.external_urls,
                popularity=old.popularity,
                genres=old.genres,
            )
            if fill_release(info, old.release_date, old.release_date_precision, old.album_type):
                filled.append("release_date")
            if row.primary_album_id_kind is IdKind.TRACK and previous.primary_album_id_kind is IdKind.ALBUM:
                row.primary_album_id = previous.primary_album_id
                row.primary_album_id_kind = IdKind.ALBUM
            touched += bool(filled)
        return touched

    def apply_album_songs(self, albums: Sequence[AlbumWithSongs]) -> None:
        for album in albums:
            for song in album.songs:
                previous = self.album_songs.get(song.song_id)
                if previous is None:
                    continue
                song.track_number = previous.track_number
                song.disc_number = previous.disc_number
                song.explicit = previous.explicit
                fill_empty(song, preview_url=previous.preview_url, external_urls=previous.external_urls)

    def apply_artists(self, rows: Sequence[RankedArtist]) -> int:
        touched = 0
        for row in rows:
            previous = _lookup(self.artists, row.key, row.primary_artist_id)
            if previous is None:
                continue
            old = previous.artist
            filled = fill_empty(
                row.artist,
                genres=old.genres,
                popularity=old.popularity,
                followers=old.followers,
                images=old.images,
                external_urls=old.external_urls,
            )
            if row.primary_artist_id_kind is IdKind.TRACK and previous.primary_artist_id_kind is IdKind.ARTIST:
                row.primary_artist_id = previous.primary_artist_id
                row.primary_artist_id_kind = IdKind.ARTIST
            self._apply_breakdowns(row, previous)
            touched += bool(filled)
        return touched

    @staticmethod
    def _apply_breakdowns(row: RankedArtist, previous: RankedArtist) -> None:
        old_songs = _index(previous.top_songs or [], lambda s: s.song_id)
        for song in row.top_songs or []:
            old_song = old_songs.get(song.song_id)
            if old_song is not None:
                fill_empty(song.album, images=old_song.album.images)

        old_albums = _index(
            previous.top_albums or [],
            lambda a: a.primary_album_id,
            lambda a: normalize(a.name),
        )
        for album in row.top_albums or []:
            old_album = _lookup(old_albums, album.primary_album_id, normalize(album.name))
            if old_album is None:
                continue
            fill_empty(album, images=old_album.images)
            if album.primary_album_id_kind is IdKind.TRACK and old_album.primary_album_id_kind is IdKind.ALBUM:
                album.primary_album_id = old_album.primary_album_id
                album.primary_album_id_kind = IdKind.ALBUM
