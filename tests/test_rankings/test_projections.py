"""Tests for ProjectionBuilder."""

import pytest

from listening_stats.identity import IdKind
from listening_stats.rankings.projections import ProjectionBuilder, yearly_play_time
from listening_stats.rankings.rules import ConsolidationRule, ConsolidationRules


@pytest.fixture
def history(make_play, make_history):
    """Two artists, one album; some plays fall before the 30-day window ending 2024-06-01T12:00Z."""
    return make_history(
        [
            make_play("Track A", "Artist A", "2024-04-01T10:00:00.000Z", track_id="track-a", album_id="alb-a"),
            make_play("Track A", "Artist A", "2024-04-02T10:00:00.000Z", track_id="track-a", album_id="alb-a"),
            make_play("Track A", "Artist A", "2024-05-30T10:00:00.000Z", track_id="track-a", album_id="alb-a"),
            make_play(
                "Track B", "Artist A", "2024-05-20T10:00:00.000Z",
                track_id="track-b", album_id="alb-a", duration_ms=100_000,
            ),
            make_play(
                "Track B", "Artist A", "2024-05-21T10:00:00.000Z",
                track_id="track-b", album_id="alb-a", duration_ms=100_000,
            ),
            make_play("Track C", "Artist C", "2023-12-31T23:00:00.000Z", track_id="track-c", album=""),
        ]
    )


@pytest.fixture
def builder(now) -> ProjectionBuilder:
    return ProjectionBuilder(now=now)


def test_songs_are_ranked_by_count(history, builder) -> None:
    """Songs are ranked densely from 1 by play count."""
    result = builder.build_songs(history)

    assert [(s.rank, s.song.name, s.count) for s in result.items] == [
        (1, "Track A", 3),
        (2, "Track B", 2),
        (3, "Track C", 1),
    ]
    assert result.original_count == 3
    assert result.consolidated_count == 3


def test_song_counts_are_conserved(history, builder) -> None:
    """Below the cap, song play counts add up to the number of listening events."""
    result = builder.build_songs(history)

    assert sum(s.count for s in result.items) == history.metadata.total_listening_events


def test_ranking_movement(history, builder) -> None:
    """Plays before the window give the past count and the past rank."""
    songs = {s.song.name: s for s in builder.build_songs(history).items}

    assert songs["Track A"].count_30_days_ago == 2
    assert songs["Track A"].rank_30_days_ago == 1
    assert songs["Track C"].count_30_days_ago == 1
    assert songs["Track C"].rank_30_days_ago == 2
    assert songs["Track B"].count_30_days_ago == 0
    assert songs["Track B"].rank_30_days_ago is None


def test_caps_truncate_after_ranking(history, now) -> None:
    """Only the top N rows are kept; metadata counts still describe all rows."""
    result = ProjectionBuilder(now=now, songs_limit=2).build_songs(history)

    assert [s.rank for s in result.items] == [1, 2]
    assert result.original_count == 3


def test_album_durations_are_distinct(history, builder) -> None:
    """duration_ms is the runtime of the album's songs, total_duration_ms the listening time."""
    result = builder.build_albums(history)

    assert len(result.items) == 1
    album = result.items[0]
    assert album.album.name == "Album A"
    assert album.count == 5
    assert album.duration_ms == 300_000
    assert album.total_duration_ms == 3 * 200_000 + 2 * 100_000
    assert album.differents == 2
    assert album.primary_album_id == "alb-a"
    assert album.primary_album_id_kind is IdKind.ALBUM
    assert album.album.artists == ["Artist A"]


def test_songs_without_album_are_not_grouped(history, builder) -> None:
    """An empty album name never forms an album row."""
    result = builder.build_albums(history)

    assert all(a.album.name for a in result.items)
    assert result.original_count == 1


def test_album_without_id_uses_track_placeholder(make_play, make_history, now) -> None:
    """Albums unknown to the history carry a song ID tagged as a track placeholder."""
    history = make_history([make_play(album_id="")])

    album = ProjectionBuilder(now=now).build_albums(history).items[0]

    assert album.primary_album_id == "track-a"
    assert album.primary_album_id_kind is IdKind.TRACK


def test_albums_with_songs(history, builder) -> None:
    """Album breakdown lists its songs by play count with earliest play and yearly time."""
    album = builder.build_albums_with_songs(history).items[0]

    assert [(s.name, s.play_count) for s in album.songs] == [("Track A", 3), ("Track B", 2)]
    assert album.total_songs == 2
    assert album.played_songs == 2
    assert album.unplayed_songs == 0
    assert album.earliest_played_at == "2024-04-01T10:00:00.000Z"
    assert [(y.year, y.total_listening_time_ms) for y in album.yearly_play_time] == [("2024", 800_000)]


def test_artists(history, builder) -> None:
    """Artists aggregate their songs; the most recently played song stands in for the ID."""
    result = builder.build_artists(history)
    artists = {a.artist.name: a for a in result.items}

    artist_a = artists["Artist A"]
    assert artist_a.rank == 1
    assert artist_a.count == 5
    assert artist_a.differents == 2
    assert artist_a.primary_artist_id == "track-a"
    assert artist_a.primary_artist_id_kind is IdKind.TRACK
    assert [s.name for s in artist_a.top_songs] == ["Track A", "Track B"]
    assert artist_a.top_albums[0].name == "Album A"
    assert artist_a.top_albums[0].play_count == 5

    artist_c = artists["Artist C"]
    assert artist_c.top_albums is None
    assert [(y.year, y.total_listening_time_ms) for y in artist_c.yearly_play_time] == [("2023", 200_000)]


def test_ranks_are_monotonic(history, builder) -> None:
    """In every projection ranks run 1..n and counts never increase."""
    projections = builder.build_all(history)

    for result in (projections.songs, projections.albums, projections.artists, projections.albums_with_songs):
        assert [row.rank for row in result.items] == list(range(1, len(result.items) + 1))
        counts = [row.count for row in result.items]
        assert counts == sorted(counts, reverse=True)


def test_no_zero_play_rows(history, builder) -> None:
    """Every projected row has at least one play."""
    projections = builder.build_all(history)

    for result in (projections.songs, projections.albums, projections.artists, projections.albums_with_songs):
        assert all(row.count > 0 for row in result.items)


def test_album_rules_group_editions(make_play, make_history, now) -> None:
    """Edition variants of an album group into one row under the base name."""
    history = make_history(
        [
            make_play("Come Together", "The Beatles", "2024-05-01T10:00:00.000Z", track_id="t1", album="Abbey Road"),
            make_play(
                "Something", "The Beatles", "2024-05-02T10:00:00.000Z",
                track_id="t2", album="Abbey Road (Remastered)",
            ),
        ]
    )
    rules = ConsolidationRules(
        [ConsolidationRule(artist_name="The Beatles", base_album_name="Abbey Road", variations=["Abbey Road (Remastered)"])]
    )

    result = ProjectionBuilder(rules, now=now).build_albums(history)

    assert len(result.items) == 1
    assert result.items[0].album.name == "Abbey Road"
    assert result.items[0].count == 2


def test_build_does_not_modify_history(history, builder) -> None:
    """Projections are derived without touching the history."""
    before = history.to_json_dict()

    builder.build_all(history)

    assert history.to_json_dict() == before


def test_yearly_play_time_empty() -> None:
    """No songs means no yearly series."""
    assert yearly_play_time([]) is None
