"""Consolidation engine: fold near-duplicate ranked rows into one row per identity.

Rows arrive pre-sorted by play count. The first row seen for an identity keeps
its descriptive fields; later rows only add their counts and fill in fields
the first one left empty. Output is sorted by ``count`` descending with ties
kept in input order.
"""

import logging
from collections.abc import Hashable, Sequence
from operator import attrgetter
from typing import TypeVar

from listening_stats.rankings.models import (
    AlbumSong,
    AlbumWithSongs,
    RankedAlbum,
    RankedArtist,
    RankedSong,
    merge_yearly_play_time,
)
from listening_stats.rankings.rules import ConsolidationRules

logger = logging.getLogger(__name__)

R = TypeVar("R", RankedAlbum, AlbumWithSongs)


def _extend_unique(target: list[str], ids: Sequence[str]) -> None:
    for raw_id in ids:
        if raw_id and raw_id not in target:
            target.append(raw_id)


def _by_count(rows):
    return sorted(rows, key=attrgetter("count"), reverse=True)


class Consolidator:
    """Per-category consolidation, parameterized by the album rules."""

    def __init__(self, rules: ConsolidationRules | None = None) -> None:
        self.rules = rules or ConsolidationRules()

    # --- Songs ---

    def consolidate_songs(self, songs: Sequence[RankedSong]) -> list[RankedSong]:
        """Merge songs by (song name, artist name).

        ``duration_ms`` is a track property and is not summed.
        """
        merged: dict[Hashable, RankedSong] = {}
        duplicates = 0

        for song in songs:
            key = song.key
            existing = merged.get(key)
            if existing is None:
                row = song.model_copy(deep=True)
                row.consolidated_count = song.count
                base_name = self.rules.base_album_name(row.album.name, row.artist.name)
                if base_name:
                    row.album.name = base_name
                merged[key] = row
                continue

            existing.count += song.count
            existing.consolidated_count += song.count
            existing.count_30_days_ago += song.count_30_days_ago
            _extend_unique(existing.original_song_ids, song.original_song_ids or [song.song_id])
            existing.yearly_play_time = merge_yearly_play_time(existing.yearly_play_time, song.yearly_play_time)
            if existing.duration_ms == 0:
                existing.duration_ms = song.duration_ms
            if not existing.album.images and song.album.images:
                existing.album.images = list(song.album.images)
            if not existing.song.external_urls and song.song.external_urls:
                existing.song.external_urls = dict(song.song.external_urls)
            if not existing.song.preview_url and song.song.preview_url:
                existing.song.preview_url = song.song.preview_url
            duplicates += 1

        result = _by_count(merged.values())
        logger.info("Songs: %d -> %d (%d duplicates removed)", len(songs), len(result), duplicates)
        return result

    # --- Albums ---

    def _album_identity(self, album: RankedAlbum) -> Hashable:
        return self.rules.album_key(album.album.name, album.album.first_artist)

    def _apply_base_name(self, album: RankedAlbum) -> None:
        base_name = self.rules.base_album_name(album.album.name, album.album.first_artist)
        if base_name:
            album.album.name = base_name

    def _absorb_album(self, existing: RankedAlbum, album: RankedAlbum) -> None:
        """Add ``album``'s totals to ``existing`` and fill its empty fields."""
        existing.count += album.count
        existing.total_count += album.total_count
        existing.duration_ms += album.duration_ms
        existing.total_duration_ms += album.total_duration_ms
        existing.differents += album.differents
        existing.consolidated_count += album.count
        existing.count_30_days_ago += album.count_30_days_ago
        _extend_unique(existing.original_album_ids, album.original_album_ids)
        if not existing.album.images and album.album.images:
            existing.album.images = list(album.album.images)
        if not existing.album.external_urls and album.album.external_urls:
            existing.album.external_urls = dict(album.album.external_urls)
        self._apply_base_name(existing)

    def _consolidate_album_rows(self, label: str, albums: Sequence[R], absorb) -> list[R]:
        merged: dict[Hashable, R] = {}
        duplicates = 0

        for album in albums:
            key = self._album_identity(album)
            existing = merged.get(key)
            if existing is None:
                row = album.model_copy(deep=True)
                row.consolidated_count = album.count
                self._apply_base_name(row)
                merged[key] = row
                continue
            absorb(existing, album)
            duplicates += 1

        result = _by_count(merged.values())
        logger.info("%s: %d -> %d (%d duplicates removed)", label, len(albums), len(result), duplicates)
        return result

    def consolidate_albums(self, albums: Sequence[RankedAlbum]) -> list[RankedAlbum]:
        """Merge albums by (rule-normalized album name, first artist)."""
        return self._consolidate_album_rows("Albums", albums, self._absorb_album)

    def consolidate_albums_with_songs(self, albums: Sequence[AlbumWithSongs]) -> list[AlbumWithSongs]:
        """Merge albums like :meth:`consolidate_albums` and also merge their song lists."""

        def absorb(existing: AlbumWithSongs, album: AlbumWithSongs) -> None:
            self._absorb_album(existing, album)
            existing.songs = self.consolidate_songs_in_album(existing.songs + album.songs)
            existing.songs.sort(key=attrgetter("play_count"), reverse=True)
            existing.refresh_song_counts()
            if album.earliest_played_at and (
                not existing.earliest_played_at or album.earliest_played_at < existing.earliest_played_at
            ):
                existing.earliest_played_at = album.earliest_played_at
            existing.yearly_play_time = merge_yearly_play_time(existing.yearly_play_time, album.yearly_play_time)

        return self._consolidate_album_rows("Albums with songs", albums, absorb)

    # --- Artists ---

    def consolidate_artists(self, artists: Sequence[RankedArtist]) -> list[RankedArtist]:
        """Merge artists by name alone."""
        merged: dict[Hashable, RankedArtist] = {}
        duplicates = 0

        for artist in artists:
            key = artist.key
            existing = merged.get(key)
            if existing is None:
                row = artist.model_copy(deep=True)
                row.consolidated_count = artist.count
                merged[key] = row
                continue

            existing.count += artist.count
            existing.total_count += artist.total_count
            existing.duration_ms += artist.duration_ms
            existing.total_duration_ms += artist.total_duration_ms
            existing.differents += artist.differents
            existing.consolidated_count += artist.count
            existing.count_30_days_ago += artist.count_30_days_ago
            _extend_unique(existing.original_artist_ids, artist.original_artist_ids)
            existing.yearly_play_time = merge_yearly_play_time(existing.yearly_play_time, artist.yearly_play_time)
            if not existing.artist.genres and artist.artist.genres:
                existing.artist.genres = list(artist.artist.genres)
            if existing.top_songs is None:
                existing.top_songs = artist.top_songs
            if existing.top_albums is None:
                existing.top_albums = artist.top_albums
            duplicates += 1

        result = _by_count(merged.values())
        logger.info("Artists: %d -> %d (%d duplicates removed)", len(artists), len(result), duplicates)
        return result

    # --- Songs inside one album ---

    def consolidate_songs_in_album(self, songs: Sequence[AlbumSong]) -> list[AlbumSong]:
        """Merge an album's songs by (name, joined artists).

        The identifiers and links of the most played variant are kept.
        """
        merged: dict[Hashable, AlbumSong] = {}
        for song in songs:
            key = song.key
            existing = merged.get(key)
            if existing is None:
                merged[key] = song.model_copy(deep=True)
                continue
            previous_plays = existing.play_count
            existing.play_count += song.play_count
            existing.total_listening_time_ms += song.total_listening_time_ms
            if song.play_count > previous_plays:
                existing.song_id = song.song_id
                existing.external_urls = dict(song.external_urls)
                existing.preview_url = song.preview_url
        return list(merged.values())
