"""Detailed listening statistics: totals, per-year top items and the hourly distribution.

Years and hours are taken in UTC. Per-year top lists are ranked by play count
(ties keep the order the songs appear in the history) and hold at most
``STATS_TOP_SIZE`` entries each.
"""

import logging
from dataclasses import dataclass, field

from pydantic import Field

from listening_stats.constants import STATS_TOP_SIZE, UNKNOWN_ALBUM
from listening_stats.history.models import ListeningHistory, SnapshotModel, SongAggregate
from listening_stats.identity import AlbumKey, ArtistKey
from listening_stats.spotify.models import SpotifyImage
from listening_stats.timestamps import parse_timestamp

logger = logging.getLogger(__name__)

MS_PER_HOUR = 1000 * 60 * 60


def to_hours(ms: int) -> float:
    return round(ms / MS_PER_HOUR, 2)


class YearlyListeningTime(SnapshotModel):
    year: str
    total_listening_time_ms: int = Field(default=0, alias="totalListeningTimeMs")
    total_listening_hours: float = Field(default=0.0, alias="totalListeningHours")
    play_count: int = Field(default=0, alias="playCount")


class HourlyListening(SnapshotModel):
    hour: int
    total_listening_time_ms: int = Field(default=0, alias="totalListeningTimeMs")
    total_listening_hours: float = Field(default=0.0, alias="totalListeningHours")
    play_count: int = Field(default=0, alias="playCount")


class StatsTopSong(SnapshotModel):
    song_id: str = Field(default="", alias="songId")
    name: str
    artist: str
    play_count: int = Field(default=0, alias="playCount")
    total_listening_time_ms: int = Field(default=0, alias="totalListeningTimeMs")
    images: list[SpotifyImage] = Field(default_factory=list)


class StatsTopArtist(SnapshotModel):
    artist_name: str = Field(alias="artistName")
    play_count: int = Field(default=0, alias="playCount")
    total_listening_time_ms: int = Field(default=0, alias="totalListeningTimeMs")
    unique_songs: int = Field(default=0, alias="uniqueSongs")
    images: list[SpotifyImage] = Field(default_factory=list)
    # Track used to resolve the artist's own images; not written out.
    representative_song_id: str = Field(default="", exclude=True)


class StatsTopAlbum(SnapshotModel):
    album_name: str = Field(alias="albumName")
    artist: str
    play_count: int = Field(default=0, alias="playCount")
    total_listening_time_ms: int = Field(default=0, alias="totalListeningTimeMs")
    unique_songs: int = Field(default=0, alias="uniqueSongs")
    images: list[SpotifyImage] = Field(default_factory=list)


class YearlyTopItems(SnapshotModel):
    year: str
    top_songs: list[StatsTopSong] = Field(default_factory=list, alias="topSongs")
    top_artists: list[StatsTopArtist] = Field(default_factory=list, alias="topArtists")
    top_albums: list[StatsTopAlbum] = Field(default_factory=list, alias="topAlbums")


class DetailedStats(SnapshotModel):
    """Contents of a ``detailed-stats-<ms>.json`` file."""

    yearly_listening_time: list[YearlyListeningTime] = Field(default_factory=list, alias="yearlyListeningTime")
    yearly_top_items: list[YearlyTopItems] = Field(default_factory=list, alias="yearlyTopItems")
    total_listening_hours: float = Field(default=0.0, alias="totalListeningHours")
    total_listening_days: float = Field(default=0.0, alias="totalListeningDays")
    total_listening_events: int = Field(default=0, alias="totalListeningEvents")
    hourly_listening_distribution: list[HourlyListening] = Field(
        default_factory=list, alias="hourlyListeningDistribution"
    )


def _max_height(images: list[SpotifyImage]) -> int:
    return max((image.height or 0 for image in images), default=0)


def _better_images(current: list[SpotifyImage], candidate: list[SpotifyImage]) -> list[SpotifyImage]:
    """Keep ``current`` unless ``candidate`` is non-empty and has a taller image."""
    if not candidate:
        return current
    if not current or _max_height(candidate) > _max_height(current):
        return list(candidate)
    return current


@dataclass(slots=True)
class _Tally:
    play_count: int = 0
    total_ms: int = 0
    song_ids: set[str] = field(default_factory=set)

    def add(self, song: SongAggregate, ms_played: int) -> None:
        self.play_count += 1
        self.total_ms += ms_played
        self.song_ids.add(song.song_id or str(song.key))


@dataclass(slots=True)
class _Year:
    tally: _Tally = field(default_factory=_Tally)
    songs: dict[str, StatsTopSong] = field(default_factory=dict)
    artists: dict[ArtistKey, tuple[StatsTopArtist, _Tally]] = field(default_factory=dict)
    albums: dict[AlbumKey, tuple[StatsTopAlbum, _Tally]] = field(default_factory=dict)


def _top(rows, size: int):
    return sorted(rows, key=lambda row: row.play_count, reverse=True)[:size]


class DetailedStatsBuilder:
    """Accumulates per-event totals over a history."""

    def __init__(self, *, top_size: int = STATS_TOP_SIZE) -> None:
        self.top_size = top_size

    def build(self, history: ListeningHistory) -> DetailedStats:
        years: dict[str, _Year] = {}
        hours = [_Tally() for _ in range(24)]

        for song in history.songs:
            artist_name = song.artist_name
            album_name = song.album.name or UNKNOWN_ALBUM
            images = song.album.images
            for event in song.listening_events:
                played_at = parse_timestamp(event.played_at)
                if played_at is None:
                    logger.debug("Skipping event with unreadable time %r", event.played_at)
                    continue
                hours[played_at.hour].add(song, event.ms_played)
                year = years.setdefault(str(played_at.year), _Year())
                year.tally.add(song, event.ms_played)
                self._add_song(year, song, artist_name, event.ms_played)
                self._add_artist(year, song, artist_name, event.ms_played)
                self._add_album(year, song, album_name, artist_name, images, event.ms_played)

        yearly_time = [
            YearlyListeningTime(
                year=label,
                total_listening_time_ms=year.tally.total_ms,
                total_listening_hours=to_hours(year.tally.total_ms),
                play_count=year.tally.play_count,
            )
            for label, year in sorted(years.items())
        ]
        total_ms = sum(entry.total_listening_time_ms for entry in yearly_time)
        total_hours = to_hours(total_ms)

        stats = DetailedStats(
            yearly_listening_time=yearly_time,
            yearly_top_items=[self._top_items(label, year) for label, year in sorted(years.items())],
            total_listening_hours=total_hours,
            total_listening_days=round(total_hours / 24, 2),
            total_listening_events=history.metadata.total_listening_events
            or sum(len(song.listening_events) for song in history.songs),
            hourly_listening_distribution=[
                HourlyListening(
                    hour=hour,
                    total_listening_time_ms=tally.total_ms,
                    total_listening_hours=to_hours(tally.total_ms),
                    play_count=tally.play_count,
                )
                for hour, tally in enumerate(hours)
            ],
        )
        logger.info(
            "Detailed stats: %.2f hours over %d years, %d listening events",
            stats.total_listening_hours,
            len(stats.yearly_listening_time),
            stats.total_listening_events,
        )
        return stats

    @staticmethod
    def _add_song(year: _Year, song: SongAggregate, artist_name: str, ms_played: int) -> None:
        key = song.song_id or str(song.key)
        row = year.songs.get(key)
        if row is None:
            row = year.songs[key] = StatsTopSong(
                song_id=song.song_id,
                name=song.name,
                artist=artist_name,
                images=list(song.album.images),
            )
        row.play_count += 1
        row.total_listening_time_ms += ms_played
        if not row.images and song.album.images:
            row.images = list(song.album.images)

    @staticmethod
    def _add_artist(year: _Year, song: SongAggregate, artist_name: str, ms_played: int) -> None:
        key = ArtistKey.of(artist_name)
        if key not in year.artists:
            year.artists[key] = (StatsTopArtist(artist_name=artist_name), _Tally())
        row, tally = year.artists[key]
        tally.add(song, ms_played)
        if not row.representative_song_id and song.song_id:
            row.representative_song_id = song.song_id
        row.images = _better_images(row.images, song.album.images)

    @staticmethod
    def _add_album(
        year: _Year,
        song: SongAggregate,
        album_name: str,
        artist_name: str,
        images: list[SpotifyImage],
        ms_played: int,
    ) -> None:
        key = AlbumKey.of(album_name, artist_name)
        if key not in year.albums:
            year.albums[key] = (StatsTopAlbum(album_name=album_name, artist=artist_name), _Tally())
        row, tally = year.albums[key]
        tally.add(song, ms_played)
        row.images = _better_images(row.images, images)

    def _top_items(self, label: str, year: _Year) -> YearlyTopItems:
        artists = []
        for row, tally in year.artists.values():
            row.play_count = tally.play_count
            row.total_listening_time_ms = tally.total_ms
            row.unique_songs = len(tally.song_ids)
            artists.append(row)
        albums = []
        for row, tally in year.albums.values():
            row.play_count = tally.play_count
            row.total_listening_time_ms = tally.total_ms
            row.unique_songs = len(tally.song_ids)
            albums.append(row)
        return YearlyTopItems(
            year=label,
            top_songs=_top(year.songs.values(), self.top_size),
            top_artists=_top(artists, self.top_size),
            top_albums=_top(albums, self.top_size),
        )


def build_detailed_stats(history: ListeningHistory, *, top_size: int = STATS_TOP_SIZE) -> DetailedStats:
    return DetailedStatsBuilder(top_size=top_size).build(history)
