"""Identity keys and ID kinds shared by the history and ranking layers.

Every in-memory index in the pipeline is keyed by one of these value objects,
so the producer and consumer of an index cannot disagree on key format.
"""

import enum
from dataclasses import dataclass

from listening_stats.constants import UNKNOWN_ARTIST


def normalize(value: str | None) -> str:
    """Case- and whitespace-insensitive form of a name."""
    return (value or "").strip().lower()


@dataclass(frozen=True, slots=True)
class SongKey:
    """Identity of a recording: song name plus primary artist."""

    name: str
    artist: str

    @classmethod
    def of(cls, name: str, primary_artist: str | None) -> "SongKey":
        return cls(normalize(name), normalize(primary_artist) or "unknown")

    def __str__(self) -> str:
        return f"{self.name}|{self.artist}"


@dataclass(frozen=True, slots=True)
class AlbumKey:
    """Identity of an album: album name plus first artist."""

    name: str
    artist: str

    @classmethod
    def of(cls, name: str, first_artist: str | None) -> "AlbumKey":
        return cls(normalize(name), normalize(first_artist or UNKNOWN_ARTIST))

    def __str__(self) -> str:
        return f"{self.name}|{self.artist}"


@dataclass(frozen=True, slots=True)
class ArtistKey:
    """Identity of an artist: the artist name alone."""

    name: str

    @classmethod
    def of(cls, name: str) -> "ArtistKey":
        return cls(normalize(name))

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class AlbumSongKey:
    """Identity of a song inside an album: name plus the joined artist list."""

    name: str
    artists: str

    @classmethod
    def of(cls, name: str, artists: list[str]) -> "AlbumSongKey":
        return cls(normalize(name), normalize(", ".join(artists)))


class IdKind(enum.StrEnum):
    """What a stored primary ID actually refers to.

    Projections start out with a track ID standing in for the album or
    artist; enrichment replaces it with the resolved entity ID.
    """

    TRACK = "track"
    ALBUM = "album"
    ARTIST = "artist"
