"""Pydantic models for Spotify Web API responses.

These are pure data models matching Spotify's JSON structure.
No storage or auth dependencies.
"""

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------


class SpotifyImage(BaseModel):
    """Image object returned by Spotify (album art, artist photos, etc.)."""

    url: str
    height: int | None = None
    width: int | None = None


# ---------------------------------------------------------------------------
# Artists
# ---------------------------------------------------------------------------


class SpotifyArtistSimplified(BaseModel):
    """Simplified artist object (embedded in tracks, albums)."""

    id: str | None = None
    name: str
    uri: str | None = None
    external_urls: dict[str, str] = Field(default_factory=dict)


class SpotifyFollowers(BaseModel):
    """Follower count block of a full artist object."""

    total: int = 0


class SpotifyArtistFull(SpotifyArtistSimplified):
    """Full artist object (from /artists endpoint)."""

    genres: list[str] = Field(default_factory=list)
    popularity: int | None = None
    images: list[SpotifyImage] = Field(default_factory=list)
    followers: SpotifyFollowers | None = None


# ---------------------------------------------------------------------------
# Albums
# ---------------------------------------------------------------------------


class SpotifyAlbumSimplified(BaseModel):
    """Simplified album object (embedded in tracks)."""

    id: str | None = None
    name: str
    uri: str | None = None
    album_type: str | None = None
    release_date: str | None = None
    release_date_precision: str | None = None
    images: list[SpotifyImage] = Field(default_factory=list)
    artists: list[SpotifyArtistSimplified] = Field(default_factory=list)
    external_urls: dict[str, str] = Field(default_factory=dict)


class SpotifyAlbumFull(SpotifyAlbumSimplified):
    """Full album object (from /albums endpoint)."""

    genres: list[str] = Field(default_factory=list)
    popularity: int | None = None


# ---------------------------------------------------------------------------
# Tracks
# ---------------------------------------------------------------------------


class SpotifyTrack(BaseModel):
    """Full track object from Spotify."""

    id: str | None = None
    name: str
    uri: str | None = None
    duration_ms: int | None = None
    explicit: bool | None = None
    popularity: int | None = None
    track_number: int | None = None
    disc_number: int | None = None
    preview_url: str | None = None
    artists: list[SpotifyArtistSimplified] = Field(default_factory=list)
    album: SpotifyAlbumSimplified | None = None
    external_urls: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Play History
# ---------------------------------------------------------------------------


class SpotifyPlayHistoryItem(BaseModel):
    """Single item from /me/player/recently-played.

    ``played_at`` stays the string Spotify sent: it is the deduplication key
    for listening events and must round-trip unchanged.
    """

    track: SpotifyTrack
    played_at: str


class SpotifyCursors(BaseModel):
    """Cursors for cursor-based paging."""

    after: str | None = None
    before: str | None = None


class RecentlyPlayedResponse(BaseModel):
    """Response from GET /me/player/recently-played."""

    items: list[SpotifyPlayHistoryItem] = Field(default_factory=list)
    next: str | None = None
    cursors: SpotifyCursors | None = None
    limit: int | None = None


# ---------------------------------------------------------------------------
# Batch endpoints
# ---------------------------------------------------------------------------


class BatchTracksResponse(BaseModel):
    """Response from GET /tracks?ids=..."""

    tracks: list[SpotifyTrack | None] = Field(default_factory=list)


class BatchAlbumsResponse(BaseModel):
    """Response from GET /albums?ids=..."""

    albums: list[SpotifyAlbumFull | None] = Field(default_factory=list)


class BatchArtistsResponse(BaseModel):
    """Response from GET /artists?ids=..."""

    artists: list[SpotifyArtistFull | None] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Current user
# ---------------------------------------------------------------------------


class SpotifyUser(BaseModel):
    """Response from GET /me (only the fields used to validate a token)."""

    id: str
    display_name: str | None = None
