"""Tests for the Consolidator."""

from listening_stats.rankings.consolidation import Consolidator
from listening_stats.rankings.models import (
    AlbumInfo,
    AlbumSong,
    AlbumWithSongs,
    ArtistInfoBlock,
    RankedAlbum,
    RankedArtist,
    RankedSong,
    SongArtistInfo,
    SongInfo,
    YearlyPlayTime,
)
from listening_stats.rankings.rules import ConsolidationRule, ConsolidationRules
from listening_stats.spotify.models import SpotifyImage

ABBEY_ROAD_RULES = ConsolidationRules(
    [
        ConsolidationRule(
            artist_name="The Beatles",
            base_album_name="Abbey Road",
            variations=["Abbey Road (Remastered)", "Abbey Road (Super Deluxe Edition)"],
        )
    ]
)


def _album(name: str, count: int, duration_ms: int, *, album_id: str = "", artist: str = "The Beatles") -> RankedAlbum:
    return RankedAlbum(
        count=count,
        total_count=count,
        duration_ms=duration_ms,
        total_duration_ms=count * 1000,
        differents=1,
        primary_album_id=album_id,
        album=AlbumInfo(name=name, artists=[artist]),
        consolidated_count=count,
        original_album_ids=[album_id] if album_id else [],
    )


def _song(name: str, artist: str, count: int, *, song_id: str, duration_ms: int = 1000) -> RankedSong:
    return RankedSong(
        count=count,
        duration_ms=duration_ms,
        song_id=song_id,
        song=SongInfo(name=name),
        artist=SongArtistInfo(name=artist),
        consolidated_count=count,
        original_song_ids=[song_id],
    )


def test_abbey_road_variants_consolidate() -> None:
    """Abbey Road 10 plays / 1000 ms + Remastered 5 plays / 2000 ms -> one row of 15 plays, 3000 ms."""
    rows = [
        _album("Abbey Road", 10, 1000, album_id="a1"),
        _album("Abbey Road (Remastered)", 5, 2000, album_id="a2"),
    ]

    result = Consolidator(ABBEY_ROAD_RULES).consolidate_albums(rows)

    assert len(result) == 1
    album = result[0]
    assert album.album.name == "Abbey Road"
    assert album.count == 15
    assert album.duration_ms == 3000
    assert album.consolidated_count == 15
    assert album.total_count == 15
    assert album.total_duration_ms == 15_000
    assert album.original_album_ids == ["a1", "a2"]


def test_variant_name_is_replaced_by_base_name() -> None:
    """A variant that arrives first still ends up named after the base album."""
    rows = [_album("Abbey Road (Super Deluxe Edition)", 7, 500)]

    result = Consolidator(ABBEY_ROAD_RULES).consolidate_albums(rows)

    assert result[0].album.name == "Abbey Road"


def test_albums_of_other_artists_are_not_merged() -> None:
    """Rules are scoped to their artist."""
    rows = [
        _album("Abbey Road", 10, 1000),
        _album("Abbey Road (Remastered)", 5, 2000, artist="A Tribute Band"),
    ]

    result = Consolidator(ABBEY_ROAD_RULES).consolidate_albums(rows)

    assert len(result) == 2


def test_albums_merge_on_case_without_rules() -> None:
    """Without rules, albums differing only in case and whitespace still merge."""
    rows = [_album("Help!", 4, 100), _album(" help! ", 3, 200)]

    result = Consolidator().consolidate_albums(rows)

    assert len(result) == 1
    assert result[0].album.name == "Help!"
    assert result[0].count == 7


def test_first_row_keeps_descriptive_fields_and_gaps_are_filled() -> None:
    """The surviving row keeps its own values and takes images only if it had none."""
    first = _album("Let It Be", 9, 100)
    second = _album("let it be", 1, 100)
    second.album.images = [SpotifyImage(url="https://i/let-it-be")]
    second.album.external_urls = {"spotify": "https://open.spotify.com/album/x"}

    result = Consolidator().consolidate_albums([first, second])

    assert result[0].album.name == "Let It Be"
    assert result[0].album.images[0].url == "https://i/let-it-be"
    assert result[0].album.external_urls == {"spotify": "https://open.spotify.com/album/x"}


def test_consolidation_conserves_counts() -> None:
    """Total plays are the same before and after consolidation."""
    rows = [
        _album("Abbey Road", 10, 1000),
        _album("Abbey Road (Remastered)", 5, 2000),
        _album("Revolver", 8, 3000),
        _album("revolver", 2, 3000),
    ]

    result = Consolidator(ABBEY_ROAD_RULES).consolidate_albums(rows)

    assert sum(r.count for r in result) == sum(r.count for r in rows)
    assert len({Consolidator(ABBEY_ROAD_RULES)._album_identity(r) for r in result}) == len(result)


def test_output_is_sorted_by_count_with_stable_ties() -> None:
    """Rows are ordered by count descending; equal counts keep their input order."""
    rows = [_album("B", 3, 1), _album("A", 5, 1), _album("C", 3, 1), _album("b", 3, 1)]

    result = Consolidator().consolidate_albums(rows)

    assert [(r.album.name, r.count) for r in result] == [("B", 6), ("A", 5), ("C", 3)]


def test_input_rows_are_not_modified() -> None:
    """Consolidation works on copies."""
    rows = [_album("Abbey Road", 10, 1000), _album("Abbey Road (Remastered)", 5, 2000)]

    Consolidator(ABBEY_ROAD_RULES).consolidate_albums(rows)

    assert rows[0].count == 10
    assert rows[1].album.name == "Abbey Road (Remastered)"


def test_songs_consolidate_without_summing_duration() -> None:
    """Song duration is a track property; plays and IDs are combined."""
    rows = [
        _song("Yesterday", "The Beatles", 6, song_id="s1", duration_ms=125_000),
        _song("yesterday", "the beatles", 4, song_id="s2", duration_ms=126_000),
    ]
    rows[0].yearly_play_time = [YearlyPlayTime(year="2023", total_listening_time_ms=10)]
    rows[1].yearly_play_time = [
        YearlyPlayTime(year="2023", total_listening_time_ms=5),
        YearlyPlayTime(year="2024", total_listening_time_ms=7),
    ]

    result = Consolidator().consolidate_songs(rows)

    assert len(result) == 1
    song = result[0]
    assert song.count == 10
    assert song.consolidated_count == 10
    assert song.duration_ms == 125_000
    assert song.song_id == "s1"
    assert song.original_song_ids == ["s1", "s2"]
    assert [(y.year, y.total_listening_time_ms) for y in song.yearly_play_time] == [("2023", 15), ("2024", 7)]


def test_songs_by_different_artists_stay_apart() -> None:
    """Same title by different artists are different songs."""
    rows = [_song("Intro", "The xx", 3, song_id="s1"), _song("Intro", "M83", 2, song_id="s2")]

    assert len(Consolidator().consolidate_songs(rows)) == 2


def test_artists_consolidate_by_name() -> None:
    """Artist rows with the same name merge their counts and durations."""
    rows = [
        RankedArtist(count=5, total_count=5, duration_ms=10, total_duration_ms=50, differents=2,
                     artist=ArtistInfoBlock(name="Daft Punk"), original_artist_ids=["t1"]),
        RankedArtist(count=3, total_count=3, duration_ms=20, total_duration_ms=30, differents=1,
                     artist=ArtistInfoBlock(name="daft punk", genres=["french house"]), original_artist_ids=["t2"]),
    ]

    result = Consolidator().consolidate_artists(rows)

    assert len(result) == 1
    artist = result[0]
    assert artist.count == 8
    assert artist.consolidated_count == 8
    assert artist.duration_ms == 30
    assert artist.total_duration_ms == 80
    assert artist.differents == 3
    assert artist.artist.name == "Daft Punk"
    assert artist.artist.genres == ["french house"]
    assert artist.original_artist_ids == ["t1", "t2"]


def test_songs_in_album_keep_most_played_variant_id() -> None:
    """Duplicate songs inside an album merge; the most played variant's ID wins."""
    songs = [
        AlbumSong(song_id="old", name="Something", play_count=2, total_listening_time_ms=20, artists=["The Beatles"]),
        AlbumSong(song_id="new", name="something", play_count=5, total_listening_time_ms=50, artists=["The Beatles"]),
    ]

    result = Consolidator().consolidate_songs_in_album(songs)

    assert len(result) == 1
    assert result[0].song_id == "new"
    assert result[0].play_count == 7
    assert result[0].total_listening_time_ms == 70


def test_albums_with_songs_merge_song_lists() -> None:
    """Album variants merge their songs and the earliest play time."""

    def album(name: str, count: int, songs: list[AlbumSong], earliest: str) -> AlbumWithSongs:
        row = AlbumWithSongs(
            count=count,
            total_count=count,
            duration_ms=sum(s.duration_ms for s in songs),
            album=AlbumInfo(name=name, artists=["The Beatles"]),
            songs=songs,
            earliest_played_at=earliest,
        )
        row.refresh_song_counts()
        return row

    rows = [
        album(
            "Abbey Road",
            3,
            [AlbumSong(song_id="s1", name="Come Together", duration_ms=1000, play_count=3, artists=["The Beatles"])],
            "2023-02-01T00:00:00.000Z",
        ),
        album(
            "Abbey Road (Remastered)",
            2,
            [
                AlbumSong(song_id="s2", name="Come Together", duration_ms=1000, play_count=1, artists=["The Beatles"]),
                AlbumSong(song_id="s3", name="Because", duration_ms=2000, play_count=1, artists=["The Beatles"]),
            ],
            "2022-12-01T00:00:00.000Z",
        ),
    ]

    result = Consolidator(ABBEY_ROAD_RULES).consolidate_albums_with_songs(rows)

    assert len(result) == 1
    merged = result[0]
    assert merged.count == 5
    assert merged.duration_ms == 4000
    assert [(s.name, s.play_count) for s in merged.songs] == [("Come Together", 4), ("Because", 1)]
    assert merged.total_songs == 2
    assert merged.played_songs == 2
    assert merged.earliest_played_at == "2022-12-01T00:00:00.000Z"
