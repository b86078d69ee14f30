"""Best-effort metadata enrichment of ranked projections from the Spotify Web API.

Only empty fields are filled. Primary IDs that are still track placeholders
are resolved to album and artist IDs through the track lookup. Failed batches
are skipped by the client, so rows in them simply stay unenriched.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from operator import attrgetter

from listening_stats.enrichment.carry_forward import CarryForward
from listening_stats.enrichment.fill import fill_empty, fill_release
from listening_stats.enrichment.stats import apply_stats_images, artist_photos
from listening_stats.identity import ArtistKey, IdKind
from listening_stats.rankings.models import (
    AlbumWithSongs,
    ArtistTopAlbum,
    Followers,
    RankedAlbum,
    RankedArtist,
    RankedSong,
)
from listening_stats.rankings.projections import Projections
from listening_stats.rankings.stats import DetailedStats
from listening_stats.spotify.client import SpotifyClient
from listening_stats.spotify.models import SpotifyAlbumFull, SpotifyArtistFull, SpotifyTrack
from listening_stats.store.outputs import PreviousOutputs

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class EnrichmentReport:
    carried_forward: int = 0
    songs: int = 0
    albums: int = 0
    albums_with_songs: int = 0
    artists: int = 0
    artist_breakdowns: int = 0
    album_songs: int = 0
    detailed_stats: int = 0


def carry_forward(projections: Projections, previous: PreviousOutputs) -> int:
    """Copy previously fetched metadata onto ``projections``. Needs no credentials."""
    return CarryForward(previous).apply(projections)


def _order_album_songs(album: AlbumWithSongs) -> None:
    album.songs.sort(key=attrgetter("play_count"), reverse=True)
    album.songs.sort(key=lambda s: (s.disc_number, s.track_number))


class MetadataEnricher:
    """Fills descriptive metadata using a connected :class:`SpotifyClient`.

    Tracks are fetched once per enricher and shared between categories.
    """

    def __init__(self, client: SpotifyClient) -> None:
        self.client = client
        self._tracks: dict[str, SpotifyTrack] = {}
        self._albums: dict[str, SpotifyAlbumFull] = {}
        self._artists: dict[str, SpotifyArtistFull] = {}

    async def enrich(
        self,
        projections: Projections,
        previous: PreviousOutputs | None = None,
        *,
        stats: DetailedStats | None = None,
    ) -> EnrichmentReport:
        report = EnrichmentReport()
        if previous is not None:
            report.carried_forward = carry_forward(projections, previous)

        report.songs = await self.enrich_songs(projections.songs.items)
        report.artists = await self.enrich_artists(projections.artists.items)
        report.artist_breakdowns = await self.enrich_artist_breakdowns(projections.artists.items)
        report.albums = await self.enrich_albums(projections.albums.items)
        report.albums_with_songs = await self.enrich_albums(projections.albums_with_songs.items)
        report.album_songs = await self.enrich_album_songs(projections.albums_with_songs.items)
        if stats is not None:
            report.detailed_stats = await self.enrich_detailed_stats(stats, projections)

        logger.info(
            "Enrichment complete: %d songs, %d albums, %d albums with songs, %d artists",
            report.songs,
            report.albums,
            report.albums_with_songs,
            report.artists,
        )
        return report

    # --- Cached lookups ---

    async def _fetch_tracks(self, ids: Iterable[str]) -> dict[str, SpotifyTrack]:
        missing = [i for i in dict.fromkeys(ids) if i and i not in self._tracks]
        if missing:
            logger.info("Fetching %d tracks", len(missing))
            self._tracks.update(await self.client.fetch_tracks(missing))
        return self._tracks

    async def _fetch_albums(self, ids: Iterable[str]) -> dict[str, SpotifyAlbumFull]:
        missing = [i for i in dict.fromkeys(ids) if i and i not in self._albums]
        if missing:
            logger.info("Fetching %d albums", len(missing))
            self._albums.update(await self.client.fetch_albums(missing))
        return self._albums

    async def _fetch_artists(self, ids: Iterable[str]) -> dict[str, SpotifyArtistFull]:
        missing = [i for i in dict.fromkeys(ids) if i and i not in self._artists]
        if missing:
            logger.info("Fetching %d artists", len(missing))
            self._artists.update(await self.client.fetch_artists(missing))
        return self._artists

    def _album_id_via(self, primary_id: str, kind: IdKind) -> str | None:
        if kind is IdKind.ALBUM:
            return primary_id
        track = self._tracks.get(primary_id)
        return track.album.id if track and track.album and track.album.id else None

    def _artist_id_via(self, primary_id: str, kind: IdKind) -> str | None:
        if kind is IdKind.ARTIST:
            return primary_id
        track = self._tracks.get(primary_id)
        if track and track.artists and track.artists[0].id:
            return track.artists[0].id
        return None

    # --- Songs ---

    async def enrich_songs(self, rows: Sequence[RankedSong]) -> int:
        needing = [r for r in rows if not (r.song.external_urls and r.album.images)]
        if not needing:
            logger.info("All songs already have metadata, skipping API calls")
            return 0
        tracks = await self._fetch_tracks(r.song_id for r in needing)

        enriched = 0
        for row in needing:
            track = tracks.get(row.song_id)
            if track is None:
                continue
            filled = fill_empty(row.song, preview_url=track.preview_url, external_urls=track.external_urls)
            if track.album:
                filled += fill_empty(row.album, images=track.album.images)
            enriched += bool(filled)
        return enriched

    # --- Albums ---

    async def enrich_albums(self, rows: Sequence[RankedAlbum]) -> int:
        needing = [
            r for r in rows if not (r.album.images and r.album.external_urls and r.album.release_date)
        ]
        if not needing:
            return 0
        await self._fetch_tracks(r.primary_album_id for r in needing if r.primary_album_id_kind is IdKind.TRACK)
        album_ids = {id(r): self._album_id_via(r.primary_album_id, r.primary_album_id_kind) for r in needing}
        albums = await self._fetch_albums(i for i in album_ids.values() if i)

        enriched = 0
        for row in needing:
            album_id = album_ids[id(row)]
            album = albums.get(album_id) if album_id else None
            track = self._tracks.get(row.primary_album_id) if row.primary_album_id_kind is IdKind.TRACK else None
            source = album or (track.album if track else None)
            if source is None:
                continue

            if album_id and album is not None:
                row.primary_album_id = album_id
                row.primary_album_id_kind = IdKind.ALBUM

            info = row.album
            filled = fill_empty(info, images=source.images, external_urls=source.external_urls)
            if fill_release(info, source.release_date, source.release_date_precision, source.album_type):
                filled.append("release_date")
            if album is not None:
                filled += fill_empty(info, popularity=album.popularity, genres=album.genres)
            enriched += bool(filled)
        return enriched

    async def enrich_album_songs(self, albums: Sequence[AlbumWithSongs]) -> int:
        """Track and disc numbers for the songs of each album, then disc/track order."""
        tracks = await self._fetch_tracks(song.song_id for album in albums for song in album.songs)
        enriched = 0
        for album in albums:
            for song in album.songs:
                track = tracks.get(song.song_id)
                if track is None:
                    continue
                if track.track_number is not None:
                    song.track_number = track.track_number
                if track.disc_number is not None:
                    song.disc_number = track.disc_number
                if track.explicit is not None:
                    song.explicit = track.explicit
                fill_empty(song, preview_url=track.preview_url, external_urls=track.external_urls)
                enriched += 1
            _order_album_songs(album)
        return enriched

    # --- Artists ---

    async def enrich_artists(self, rows: Sequence[RankedArtist]) -> int:
        needing = [
            r
            for r in rows
            if not (r.artist.images and r.artist.external_urls and r.artist.popularity)
        ]
        if not needing:
            logger.info("All artists already have metadata, skipping API calls")
            return 0
        await self._fetch_tracks(r.primary_artist_id for r in needing if r.primary_artist_id_kind is IdKind.TRACK)
        artist_ids = {id(r): self._artist_id_via(r.primary_artist_id, r.primary_artist_id_kind) for r in needing}
        artists = await self._fetch_artists(i for i in artist_ids.values() if i)

        enriched = 0
        for row in needing:
            artist_id = artist_ids[id(row)]
            artist = artists.get(artist_id) if artist_id else None
            if artist is None:
                continue
            row.primary_artist_id = artist.id or row.primary_artist_id
            row.primary_artist_id_kind = IdKind.ARTIST
            filled = fill_empty(
                row.artist,
                popularity=artist.popularity,
                followers=Followers(total=artist.followers.total if artist.followers else 0),
                images=artist.images,
                external_urls=artist.external_urls,
                genres=artist.genres,
            )
            enriched += bool(filled)
        return enriched

    async def enrich_artist_breakdowns(self, rows: Sequence[RankedArtist]) -> int:
        """Album images for each artist's top songs and top albums."""
        songs = [s for r in rows for s in r.top_songs or [] if not s.album.images]
        top_albums = [a for r in rows for a in r.top_albums or [] if not a.images]
        if not songs and not top_albums:
            return 0

        await self._fetch_tracks(
            [s.song_id for s in songs]
            + [a.primary_album_id for a in top_albums if a.primary_album_id_kind is IdKind.TRACK]
        )
        album_ids = {id(a): self._album_id_via(a.primary_album_id, a.primary_album_id_kind) for a in top_albums}
        albums = await self._fetch_albums(i for i in album_ids.values() if i)

        enriched = 0
        for song in songs:
            track = self._tracks.get(song.song_id)
            if track and track.album:
                enriched += bool(fill_empty(song.album, images=track.album.images))
        for top_album in top_albums:
            enriched += self._fill_top_album(top_album, album_ids[id(top_album)], albums)
        return enriched

    def _fill_top_album(
        self,
        top_album: ArtistTopAlbum,
        album_id: str | None,
        albums: dict[str, SpotifyAlbumFull],
    ) -> bool:
        album = albums.get(album_id) if album_id else None
        if album is not None:
            top_album.primary_album_id = album_id or top_album.primary_album_id
            top_album.primary_album_id_kind = IdKind.ALBUM
            if fill_empty(top_album, images=album.images):
                return True
        track = self._tracks.get(top_album.primary_album_id)
        if track and track.album:
            return bool(fill_empty(top_album, images=track.album.images))
        return False

    # --- Detailed stats ---

    async def enrich_detailed_stats(self, stats: DetailedStats, projections: Projections) -> int:
        """Images for the per-year top lists.

        Artists missing from the ranked artists are resolved through one of
        their tracks to fetch their photo.
        """
        photos = artist_photos(projections)
        unmatched: dict[ArtistKey, str] = {}
        for year in stats.yearly_top_items:
            for artist in year.top_artists:
                key = ArtistKey.of(artist.artist_name)
                if key not in photos and artist.representative_song_id:
                    unmatched.setdefault(key, artist.representative_song_id)
        if unmatched:
            await self._fetch_tracks(unmatched.values())
            artist_ids = {key: self._artist_id_via(song_id, IdKind.TRACK) for key, song_id in unmatched.items()}
            artists = await self._fetch_artists(i for i in artist_ids.values() if i)
            for key, artist_id in artist_ids.items():
                artist = artists.get(artist_id) if artist_id else None
                if artist is not None and artist.images:
                    photos[key] = artist.images
        return apply_stats_images(stats, projections, photos)
