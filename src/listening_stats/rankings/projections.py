"""Top-N projection builder: derive the four ranked views from the history.

Projections are rebuilt from scratch on every run and never modify the
history. Each one is grouped, pre-sorted by play count, consolidated,
truncated to its cap and then ranked densely from 1.
"""

import logging
from collections.abc import Callable, Hashable, Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from operator import attrgetter
from typing import TypeVar

from listening_stats.constants import (
    ARTIST_BREAKDOWN_SIZE,
    DEFAULT_ALBUMS_WITH_SONGS_LIMIT,
    DEFAULT_MOVEMENT_WINDOW_DAYS,
    DEFAULT_TOP_LIMIT,
    UNKNOWN_ARTIST,
)
from listening_stats.history.models import ListeningHistory, SongAggregate
from listening_stats.identity import AlbumKey, IdKind, normalize
from listening_stats.rankings.consolidation import Consolidator
from listening_stats.rankings.models import (
    AlbumInfo,
    AlbumSong,
    AlbumWithSongs,
    ArtistInfoBlock,
    ArtistTopAlbum,
    ArtistTopSong,
    ProjectionResult,
    RankedAlbum,
    RankedArtist,
    RankedSong,
    SongAlbumInfo,
    SongArtistInfo,
    SongInfo,
    YearlyPlayTime,
)
from listening_stats.rankings.rules import ConsolidationRules
from listening_stats.timestamps import parse_timestamp, utc_now

logger = logging.getLogger(__name__)

Row = TypeVar("Row", RankedSong, RankedAlbum, AlbumWithSongs, RankedArtist)


@dataclass(slots=True)
class Projections:
    """The four ranked views produced by one run."""

    songs: ProjectionResult[RankedSong]
    albums: ProjectionResult[RankedAlbum]
    artists: ProjectionResult[RankedArtist]
    albums_with_songs: ProjectionResult[AlbumWithSongs]


def yearly_play_time(songs: Iterable[SongAggregate]) -> list[YearlyPlayTime] | None:
    """Listening time per calendar year (UTC), or None if nothing was played."""
    totals: dict[str, int] = {}
    for song in songs:
        for event in song.listening_events:
            played_at = parse_timestamp(event.played_at)
            if played_at is None:
                continue
            year = str(played_at.year)
            totals[year] = totals.get(year, 0) + event.ms_played
    if not totals:
        return None
    return [YearlyPlayTime(year=year, total_listening_time_ms=ms) for year, ms in sorted(totals.items())]


def _primary_artist(song: SongAggregate) -> str:
    return (song.artists[0] if song.artists else "") or song.artist.name or UNKNOWN_ARTIST


def _last_played(song: SongAggregate) -> datetime | None:
    times = [t for e in song.listening_events if (t := parse_timestamp(e.played_at)) is not None]
    return max(times) if times else None


def _album_primary_id(song: SongAggregate) -> tuple[str, IdKind]:
    """The album's own ID when the history has it, else the song ID as a placeholder."""
    if song.album.id:
        return song.album.id, IdKind.ALBUM
    return song.song_id, IdKind.TRACK


def _most_common_name(names: Iterable[str]) -> str:
    """Most frequent name (case-insensitive); the first spelling seen wins."""
    counts: dict[str, int] = {}
    spelling: dict[str, str] = {}
    for name in names:
        stripped = name.strip()
        if not stripped:
            continue
        lowered = stripped.lower()
        counts[lowered] = counts.get(lowered, 0) + 1
        spelling.setdefault(lowered, stripped)
    if not counts:
        return ""
    best = max(counts, key=counts.__getitem__)
    return spelling[best]


class ProjectionBuilder:
    """Builds ranked projections from a history snapshot.

    ``now`` fixes the reference time for the ranking-movement window so a
    build is reproducible.
    """

    def __init__(
        self,
        rules: ConsolidationRules | None = None,
        *,
        now: datetime | None = None,
        movement_window_days: int = DEFAULT_MOVEMENT_WINDOW_DAYS,
        songs_limit: int = DEFAULT_TOP_LIMIT,
        albums_limit: int = DEFAULT_TOP_LIMIT,
        artists_limit: int = DEFAULT_TOP_LIMIT,
        albums_with_songs_limit: int = DEFAULT_ALBUMS_WITH_SONGS_LIMIT,
    ) -> None:
        self.rules = rules or ConsolidationRules()
        self.consolidator = Consolidator(self.rules)
        self.now = now or utc_now()
        self.cutoff = self.now - timedelta(days=movement_window_days)
        self.songs_limit = songs_limit
        self.albums_limit = albums_limit
        self.artists_limit = artists_limit
        self.albums_with_songs_limit = albums_with_songs_limit

    def build_all(self, history: ListeningHistory) -> Projections:
        return Projections(
            songs=self.build_songs(history),
            albums=self.build_albums(history),
            artists=self.build_artists(history),
            albums_with_songs=self.build_albums_with_songs(history),
        )

    # --- Shared helpers ---

    def _plays_before_window(self, songs: Iterable[SongAggregate]) -> int:
        count = 0
        for song in songs:
            for event in song.listening_events:
                played_at = parse_timestamp(event.played_at)
                if played_at is not None and played_at < self.cutoff:
                    count += 1
        return count

    def _rank(
        self,
        rows: Sequence[Row],
        limit: int,
        lookup_keys: Callable[[Row], list[Hashable]],
    ) -> list[Row]:
        """Truncate to ``limit``, assign ranks and the rank at the start of the movement window.

        The past rank is looked up by identity key first, then by raw ID. Rows
        with no plays before the window have no past rank.
        """
        past = sorted((r for r in rows if r.count_30_days_ago > 0), key=attrgetter("count_30_days_ago"), reverse=True)
        past_rank: dict[Hashable, int] = {}
        for position, row in enumerate(past[:limit], start=1):
            for key in lookup_keys(row):
                if key:
                    past_rank.setdefault(key, position)

        top = list(rows[:limit])
        for position, row in enumerate(top, start=1):
            row.rank = position
            row.rank_30_days_ago = next((past_rank[k] for k in lookup_keys(row) if k in past_rank), None)
        return top

    # --- Songs ---

    def _song_row(self, song: SongAggregate) -> RankedSong:
        return RankedSong(
            duration_ms=song.duration_ms,
            count=song.play_count,
            count_30_days_ago=self._plays_before_window([song]),
            song_id=song.song_id,
            song=SongInfo(name=song.name, preview_url=song.preview_url, external_urls=dict(song.external_urls)),
            album=SongAlbumInfo(name=song.album.name, images=list(song.album.images)),
            artist=SongArtistInfo(name=song.artist_name, genres=list(song.artist.genres)),
            consolidated_count=song.play_count,
            original_song_ids=[song.song_id] if song.song_id else [],
            yearly_play_time=yearly_play_time([song]),
        )

    def build_songs(self, history: ListeningHistory) -> ProjectionResult[RankedSong]:
        rows = sorted((self._song_row(s) for s in history.songs), key=attrgetter("count"), reverse=True)
        consolidated = self.consolidator.consolidate_songs(rows)
        ranked = self._rank(
            consolidated,
            self.songs_limit,
            lambda row: [row.key, row.song_id, *row.original_song_ids],
        )
        return ProjectionResult(ranked, len(rows), len(consolidated))

    # --- Albums ---

    def _group_by_album(self, songs: Iterable[SongAggregate]) -> dict[AlbumKey, list[SongAggregate]]:
        """Group songs by (rule-normalized album name, primary artist). Songs without an album are skipped."""
        groups: dict[AlbumKey, list[SongAggregate]] = {}
        for song in songs:
            album_name = song.album.name.strip()
            if not album_name:
                continue
            key = self.rules.album_key(album_name, _primary_artist(song))
            groups.setdefault(key, []).append(song)
        return groups

    def _album_fields(self, songs: list[SongAggregate]) -> dict:
        """Aggregates shared by the top-albums and albums-with-songs rows."""
        first_artist = _primary_artist(songs[0])
        album_name = self.rules.base_album_name(songs[0].album.name, first_artist) or _most_common_name(
            s.album.name for s in songs
        )
        representative = next((s for s in songs if normalize(s.album.name) == normalize(album_name)), songs[0])
        primary_id, id_kind = _album_primary_id(representative)
        count = sum(s.play_count for s in songs)

        original_ids: list[str] = []
        for song in songs:
            if song.album.id and song.album.id not in original_ids:
                original_ids.append(song.album.id)

        return {
            "duration_ms": sum(s.duration_ms for s in songs),
            "count": count,
            "count_30_days_ago": self._plays_before_window(songs),
            "differents": len({s.song_id or str(s.key) for s in songs}),
            "primary_album_id": primary_id,
            "primary_album_id_kind": id_kind,
            "total_count": count,
            "total_duration_ms": sum(s.total_listening_time_ms for s in songs),
            "album": AlbumInfo(
                name=album_name,
                artists=[first_artist],
                images=list(representative.album.images),
                genres=list(representative.artist.genres),
            ),
            "consolidated_count": count,
            "original_album_ids": original_ids,
        }

    @staticmethod
    def _album_lookup_keys(row: RankedAlbum) -> list[Hashable]:
        return [row.key, row.primary_album_id]

    def build_albums(self, history: ListeningHistory) -> ProjectionResult[RankedAlbum]:
        rows = sorted(
            (RankedAlbum(**self._album_fields(songs)) for songs in self._group_by_album(history.songs).values()),
            key=attrgetter("count"),
            reverse=True,
        )
        consolidated = self.consolidator.consolidate_albums(rows)
        ranked = self._rank(consolidated, self.albums_limit, self._album_lookup_keys)
        return ProjectionResult(ranked, len(rows), len(consolidated))

    def _album_with_songs_row(self, songs: list[SongAggregate]) -> AlbumWithSongs:
        album_songs = [
            AlbumSong(
                song_id=s.song_id,
                name=s.name,
                duration_ms=s.duration_ms,
                preview_url=s.preview_url,
                external_urls=dict(s.external_urls),
                play_count=s.play_count,
                total_listening_time_ms=s.total_listening_time_ms,
                artists=list(s.artists),
            )
            for s in songs
        ]
        album_songs.sort(key=attrgetter("play_count"), reverse=True)

        earliest: tuple[datetime, str] | None = None
        for song in songs:
            for event in song.listening_events:
                played_at = parse_timestamp(event.played_at)
                if played_at is not None and (earliest is None or played_at < earliest[0]):
                    earliest = (played_at, event.played_at)

        row = AlbumWithSongs(
            **self._album_fields(songs),
            songs=album_songs,
            earliest_played_at=earliest[1] if earliest else None,
            yearly_play_time=yearly_play_time(songs),
        )
        row.refresh_song_counts()
        return row

    def build_albums_with_songs(self, history: ListeningHistory) -> ProjectionResult[AlbumWithSongs]:
        rows = sorted(
            (self._album_with_songs_row(songs) for songs in self._group_by_album(history.songs).values()),
            key=attrgetter("count"),
            reverse=True,
        )
        consolidated = self.consolidator.consolidate_albums_with_songs(rows)
        for album in consolidated:
            album.songs = self.consolidator.consolidate_songs_in_album(album.songs)
            album.songs.sort(key=attrgetter("play_count"), reverse=True)
            album.refresh_song_counts()
        ranked = self._rank(consolidated, self.albums_with_songs_limit, self._album_lookup_keys)
        return ProjectionResult(ranked, len(rows), len(consolidated))

    # --- Artists ---

    def _top_songs(self, songs: list[SongAggregate]) -> list[ArtistTopSong]:
        """The artist's most listened songs, merged by song name."""
        merged: dict[str, ArtistTopSong] = {}
        best_plays: dict[str, int] = {}
        for song in songs:
            key = normalize(song.name)
            existing = merged.get(key)
            if existing is None:
                merged[key] = ArtistTopSong(
                    song_id=song.song_id,
                    name=song.name,
                    play_count=song.play_count,
                    total_listening_time_ms=song.total_listening_time_ms,
                    album=SongAlbumInfo(name=song.album.name, images=list(song.album.images)),
                )
                best_plays[key] = song.play_count
                continue
            existing.play_count += song.play_count
            existing.total_listening_time_ms += song.total_listening_time_ms
            if song.play_count > best_plays[key]:
                best_plays[key] = song.play_count
                existing.song_id = song.song_id
                existing.name = song.name
                if song.album.images:
                    existing.album.images = list(song.album.images)
            elif not existing.album.images and song.album.images:
                existing.album.images = list(song.album.images)

        ranked = sorted(merged.values(), key=attrgetter("total_listening_time_ms"), reverse=True)
        return ranked[:ARTIST_BREAKDOWN_SIZE]

    def _top_albums(self, artist_name: str, songs: list[SongAggregate]) -> list[ArtistTopAlbum]:
        """The artist's most listened albums, merged through the consolidation rules."""
        merged: dict[str, ArtistTopAlbum] = {}
        best_plays: dict[str, int] = {}
        for song in songs:
            album_name = song.album.name.strip()
            if not album_name:
                continue
            key = self.rules.normalize_album_name(album_name, artist_name)
            display_name = self.rules.base_album_name(album_name, artist_name) or album_name
            primary_id, id_kind = _album_primary_id(song)
            existing = merged.get(key)
            if existing is None:
                merged[key] = ArtistTopAlbum(
                    primary_album_id=primary_id,
                    primary_album_id_kind=id_kind,
                    name=display_name,
                    play_count=song.play_count,
                    total_listening_time_ms=song.total_listening_time_ms,
                    images=list(song.album.images),
                    artists=list(song.artists) or [artist_name],
                )
                best_plays[key] = song.play_count
                continue
            existing.play_count += song.play_count
            existing.total_listening_time_ms += song.total_listening_time_ms
            if song.play_count > best_plays[key]:
                best_plays[key] = song.play_count
                existing.primary_album_id = primary_id
                existing.primary_album_id_kind = id_kind
                existing.name = display_name
                if song.album.images:
                    existing.images = list(song.album.images)
            elif not existing.images and song.album.images:
                existing.images = list(song.album.images)

        ranked = sorted(merged.values(), key=attrgetter("total_listening_time_ms"), reverse=True)
        return ranked[:ARTIST_BREAKDOWN_SIZE]

    def _artist_row(self, artist_name: str, songs: list[SongAggregate]) -> RankedArtist:
        # The most recently played song stands in for the artist until enrichment.
        representative = songs[0]
        latest: datetime | None = None
        for song in songs:
            last = _last_played(song)
            if last is not None and (latest is None or last > latest):
                latest = last
                representative = song

        count = sum(s.play_count for s in songs)
        top_songs = self._top_songs(songs)
        top_albums = self._top_albums(artist_name, songs)
        return RankedArtist(
            duration_ms=sum(s.duration_ms for s in songs),
            count=count,
            count_30_days_ago=self._plays_before_window(songs),
            differents=len({s.song_id or str(s.key) for s in songs}),
            primary_artist_id=representative.song_id,
            primary_artist_id_kind=IdKind.TRACK,
            total_count=count,
            total_duration_ms=sum(s.total_listening_time_ms for s in songs),
            artist=ArtistInfoBlock(name=artist_name, genres=list(representative.artist.genres)),
            consolidated_count=count,
            original_artist_ids=[representative.song_id] if representative.song_id else [],
            yearly_play_time=yearly_play_time(songs),
            top_songs=top_songs or None,
            top_albums=top_albums or None,
        )

    def build_artists(self, history: ListeningHistory) -> ProjectionResult[RankedArtist]:
        groups: dict[str, list[SongAggregate]] = {}
        for song in history.songs:
            groups.setdefault(song.artist_name or UNKNOWN_ARTIST, []).append(song)

        rows = sorted(
            (self._artist_row(name, songs) for name, songs in groups.items()),
            key=attrgetter("count"),
            reverse=True,
        )
        consolidated = self.consolidator.consolidate_artists(rows)
        ranked = self._rank(
            consolidated,
            self.artists_limit,
            lambda row: [row.key, row.primary_artist_id],
        )
        return ProjectionResult(ranked, len(rows), len(consolidated))
