"""Pydantic models for the ranked projections written to the cleaned-data files.

Field aliases reproduce the JSON the dashboard reads (``songId``,
``primaryAlbumId``, ``original_songIds`` ...). Everything that can be filled in
by enrichment defaults to an empty value.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar

from pydantic import Field

from listening_stats.history.models import SnapshotModel
from listening_stats.identity import AlbumKey, AlbumSongKey, ArtistKey, IdKind, SongKey
from listening_stats.spotify.models import SpotifyImage


class YearlyPlayTime(SnapshotModel):
    year: str
    total_listening_time_ms: int = Field(default=0, alias="totalListeningTimeMs")


def merge_yearly_play_time(
    left: list[YearlyPlayTime] | None,
    right: list[YearlyPlayTime] | None,
) -> list[YearlyPlayTime] | None:
    """Sum two yearly series per year, ordered by year."""
    if not left and not right:
        return left or right
    totals: dict[str, int] = {}
    for entry in (left or []) + (right or []):
        totals[entry.year] = totals.get(entry.year, 0) + entry.total_listening_time_ms
    return [YearlyPlayTime(year=year, total_listening_time_ms=ms) for year, ms in sorted(totals.items())]


# --- Songs ---


class SongInfo(SnapshotModel):
    name: str
    preview_url: str | None = None
    external_urls: dict[str, str] = Field(default_factory=dict)


class SongAlbumInfo(SnapshotModel):
    name: str = ""
    images: list[SpotifyImage] = Field(default_factory=list)


class SongArtistInfo(SnapshotModel):
    name: str = ""
    genres: list[str] = Field(default_factory=list)


class RankedSong(SnapshotModel):
    """One row of the top-songs projection."""

    rank: int = 0
    duration_ms: int = 0
    count: int = 0
    count_30_days_ago: int = 0
    rank_30_days_ago: int | None = None
    song_id: str = Field(default="", alias="songId")
    song: SongInfo
    album: SongAlbumInfo = Field(default_factory=SongAlbumInfo)
    artist: SongArtistInfo = Field(default_factory=SongArtistInfo)
    consolidated_count: int = 0
    original_song_ids: list[str] = Field(default_factory=list, alias="original_songIds")
    yearly_play_time: list[YearlyPlayTime] | None = None

    @property
    def key(self) -> SongKey:
        return SongKey.of(self.song.name, self.artist.name)


# --- Albums ---


class AlbumInfo(SnapshotModel):
    """Descriptive album block; everything except the name may come from enrichment."""

    name: str
    album_type: str = "album"
    artists: list[str] = Field(default_factory=list)
    release_date: str = ""
    release_date_precision: str = "day"
    popularity: int = 0
    images: list[SpotifyImage] = Field(default_factory=list)
    external_urls: dict[str, str] = Field(default_factory=dict)
    genres: list[str] = Field(default_factory=list)

    @property
    def first_artist(self) -> str | None:
        return self.artists[0] if self.artists else None


class RankedAlbum(SnapshotModel):
    """One row of the top-albums projection.

    ``duration_ms`` is the summed runtime of the album's distinct songs;
    ``total_duration_ms`` is the cumulative listening time.
    """

    rank: int = 0
    duration_ms: int = 0
    count: int = 0
    count_30_days_ago: int = 0
    rank_30_days_ago: int | None = None
    differents: int = 0
    primary_album_id: str = Field(default="", alias="primaryAlbumId")
    primary_album_id_kind: IdKind = Field(default=IdKind.TRACK, alias="primaryAlbumIdKind")
    total_count: int = 0
    total_duration_ms: int = 0
    album: AlbumInfo
    consolidated_count: int = 0
    original_album_ids: list[str] = Field(default_factory=list, alias="original_albumIds")

    @property
    def key(self) -> AlbumKey:
        """Album name and first artist as displayed, without consolidation rules applied."""
        return AlbumKey.of(self.album.name, self.album.first_artist)


class AlbumSong(SnapshotModel):
    """A song inside the albums-with-songs breakdown."""

    song_id: str = Field(default="", alias="songId")
    name: str
    duration_ms: int = 0
    track_number: int = 1
    disc_number: int = 1
    explicit: bool = False
    preview_url: str | None = None
    external_urls: dict[str, str] = Field(default_factory=dict)
    play_count: int = 0
    total_listening_time_ms: int = 0
    artists: list[str] = Field(default_factory=list)

    @property
    def key(self) -> AlbumSongKey:
        return AlbumSongKey.of(self.name, self.artists)


class AlbumWithSongs(RankedAlbum):
    total_songs: int = 0
    played_songs: int = 0
    unplayed_songs: int = 0
    songs: list[AlbumSong] = Field(default_factory=list)
    earliest_played_at: str | None = None
    yearly_play_time: list[YearlyPlayTime] | None = None

    def refresh_song_counts(self) -> None:
        self.total_songs = len(self.songs)
        self.played_songs = sum(1 for song in self.songs if song.play_count > 0)
        self.unplayed_songs = self.total_songs - self.played_songs


# --- Artists ---


class Followers(SnapshotModel):
    total: int = 0


class ArtistInfoBlock(SnapshotModel):
    name: str
    genres: list[str] = Field(default_factory=list)
    popularity: int = 0
    followers: Followers = Field(default_factory=Followers)
    images: list[SpotifyImage] = Field(default_factory=list)
    external_urls: dict[str, str] = Field(default_factory=dict)


class ArtistTopSong(SnapshotModel):
    song_id: str = Field(default="", alias="songId")
    name: str
    play_count: int = 0
    total_listening_time_ms: int = 0
    album: SongAlbumInfo = Field(default_factory=SongAlbumInfo)


class ArtistTopAlbum(SnapshotModel):
    primary_album_id: str = Field(default="", alias="primaryAlbumId")
    primary_album_id_kind: IdKind = Field(default=IdKind.TRACK, alias="primaryAlbumIdKind")
    name: str
    play_count: int = 0
    total_listening_time_ms: int = 0
    images: list[SpotifyImage] = Field(default_factory=list)
    artists: list[str] = Field(default_factory=list)


class RankedArtist(SnapshotModel):
    """One row of the top-artists projection."""

    rank: int = 0
    duration_ms: int = 0
    count: int = 0
    count_30_days_ago: int = 0
    rank_30_days_ago: int | None = None
    differents: int = 0
    primary_artist_id: str = Field(default="", alias="primaryArtistId")
    primary_artist_id_kind: IdKind = Field(default=IdKind.TRACK, alias="primaryArtistIdKind")
    total_count: int = 0
    total_duration_ms: int = 0
    artist: ArtistInfoBlock
    consolidated_count: int = 0
    original_artist_ids: list[str] = Field(default_factory=list, alias="original_artistIds")
    yearly_play_time: list[YearlyPlayTime] | None = None
    top_songs: list[ArtistTopSong] | None = None
    top_albums: list[ArtistTopAlbum] | None = None

    @property
    def key(self) -> ArtistKey:
        return ArtistKey.of(self.artist.name)


# --- Projection results ---

T = TypeVar("T", bound=SnapshotModel)


@dataclass(slots=True)
class ProjectionResult(Generic[T]):
    """Ranked rows of one category plus the counts reported in the output metadata."""

    items: list[T]
    original_count: int
    consolidated_count: int

    @property
    def duplicates_removed(self) -> int:
        return self.original_count - self.consolidated_count
