"""Tests for the enrich-history job."""

import httpx
import respx

from listening_stats.constants import ExitCode
from listening_stats.jobs.enrich_history import enrich_history_metadata
from listening_stats.spotify.constants import TRACKS_URL
from listening_stats.store.history import HistoryStore

TRACK_A = {
    "id": "track-a",
    "name": "Track A",
    "duration_ms": 200_000,
    "external_urls": {"spotify": "https://open.spotify.com/track/track-a"},
    "album": {"id": "alb-a", "name": "Album A", "images": [{"url": "https://i/album-a"}]},
}


def _seed(settings, make_history, *plays) -> HistoryStore:
    store = HistoryStore(settings.merged_history_dir, clock=lambda: 1)
    store.save(make_history(list(plays)))
    return store


async def test_no_history(settings, token_provider) -> None:
    assert await enrich_history_metadata(settings, token_provider) == ExitCode.SUCCESS
    assert not settings.merged_history_dir.exists()


async def test_without_credentials_history_is_unchanged(settings, make_play, make_history) -> None:
    store = _seed(settings, make_history, make_play())

    assert await enrich_history_metadata(settings, None) == ExitCode.SUCCESS
    assert len(store.merged.snapshots()) == 1


@respx.mock
async def test_writes_new_generation(settings, make_play, make_history, now, token_provider, fake_sleep) -> None:
    store = _seed(settings, make_history, make_play())
    respx.get(TRACKS_URL).mock(return_value=httpx.Response(200, json={"tracks": [TRACK_A]}))

    code = await enrich_history_metadata(settings, token_provider, now=now, sleep=fake_sleep)

    assert code == ExitCode.SUCCESS
    assert len(store.merged.snapshots()) == 2
    history = store.load_latest()
    assert history.songs[0].album.id == "alb-a"
    assert history.songs[0].album.images[0].url == "https://i/album-a"
    assert history.metadata.last_updated == "2024-06-01T12:00:00.000Z"
    assert history.metadata.total_listening_events == 1


@respx.mock
async def test_nothing_found_writes_nothing(settings, make_play, make_history, token_provider, fake_sleep) -> None:
    store = _seed(settings, make_history, make_play())
    respx.get(TRACKS_URL).mock(return_value=httpx.Response(200, json={"tracks": [None]}))

    assert await enrich_history_metadata(settings, token_provider, sleep=fake_sleep) == ExitCode.SUCCESS
    assert len(store.merged.snapshots()) == 1
