"""Pydantic models for the cumulative listening history snapshot.

Field aliases match the JSON written to disk (camelCase where the snapshot
uses it). Unknown fields are preserved so that data added by other tools
survives a load/merge/save cycle.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from listening_stats.identity import SongKey
from listening_stats.spotify.models import SpotifyImage


class SnapshotModel(BaseModel):
    """Base for models that round-trip through snapshot JSON."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class AlbumRef(SnapshotModel):
    """Album a song was played from."""

    id: str = ""
    name: str = ""
    images: list[SpotifyImage] = Field(default_factory=list)


class ArtistInfo(SnapshotModel):
    """Primary artist block stored on each song."""

    name: str = ""
    genres: list[str] = Field(default_factory=list)


class ListeningEvent(SnapshotModel):
    """One play of a song. Unique within its song by ``played_at``."""

    played_at: str = Field(alias="playedAt")
    ms_played: int = Field(default=0, alias="msPlayed")


class PlayEvent(SnapshotModel):
    """A raw recently-played record as delivered by the collector."""

    track_id: str = Field(default="", alias="id")
    name: str
    artists: list[str] = Field(default_factory=list)
    album: AlbumRef = Field(default_factory=AlbumRef)
    duration_ms: int = 0
    played_at: str
    external_urls: dict[str, str] = Field(default_factory=dict)
    preview_url: str | None = None

    @property
    def primary_artist(self) -> str | None:
        return self.artists[0] if self.artists else None

    @property
    def key(self) -> SongKey:
        return SongKey.of(self.name, self.primary_artist)


class SongAggregate(SnapshotModel):
    """Cumulative record for one recording.

    ``play_count`` and ``total_listening_time_ms`` are derived from
    ``listening_events`` and recomputed whenever the song is touched.
    """

    song_id: str = Field(default="", alias="songId")
    name: str
    duration_ms: int = 0
    artists: list[str] = Field(default_factory=list)
    album: AlbumRef = Field(default_factory=AlbumRef)
    artist: ArtistInfo = Field(default_factory=ArtistInfo)
    external_urls: dict[str, str] = Field(default_factory=dict)
    preview_url: str | None = None
    play_count: int = Field(default=0, alias="playCount")
    total_listening_time_ms: int = Field(default=0, alias="totalListeningTime")
    listening_events: list[ListeningEvent] = Field(default_factory=list, alias="listeningEvents")

    @property
    def key(self) -> SongKey:
        return SongKey.of(self.name, self.artists[0] if self.artists else None)

    @property
    def artist_name(self) -> str:
        """Name of the artist this song is credited to for artist rankings."""
        return self.artist.name or (self.artists[0] if self.artists else "")

    def has_event(self, played_at: str) -> bool:
        return any(event.played_at == played_at for event in self.listening_events)

    def recompute_totals(self) -> None:
        self.play_count = len(self.listening_events)
        self.total_listening_time_ms = sum(event.ms_played for event in self.listening_events)

    def dedupe_events(self) -> int:
        """Drop repeated ``played_at`` events (first one wins). Returns number removed."""
        seen: set[str] = set()
        unique: list[ListeningEvent] = []
        for event in self.listening_events:
            if event.played_at in seen:
                continue
            seen.add(event.played_at)
            unique.append(event)
        removed = len(self.listening_events) - len(unique)
        self.listening_events = unique
        self.recompute_totals()
        return removed


class DateRange(SnapshotModel):
    earliest: str = ""
    latest: str = ""


class HistoryMetadata(SnapshotModel):
    """Summary block of a history snapshot."""

    total_songs: int = Field(default=0, alias="totalSongs")
    total_listening_events: int = Field(default=0, alias="totalListeningEvents")
    total_listening_time: int = Field(default=0, alias="totalListeningTime")
    date_range: DateRange = Field(default_factory=DateRange, alias="dateRange")
    source: str = ""
    last_updated: str | None = Field(default=None, alias="lastUpdated")


class ListeningHistory(SnapshotModel):
    """The cumulative history snapshot: the pipeline's source of truth."""

    metadata: HistoryMetadata = Field(default_factory=HistoryMetadata)
    songs: list[SongAggregate] = Field(default_factory=list)
