"""Tests for the new-data check."""

import httpx
import respx

from listening_stats.constants import NEW_DATA_FOUND, NO_NEW_DATA, Snapshots
from listening_stats.jobs.check import check_for_new_plays
from listening_stats.spotify.constants import RECENTLY_PLAYED_URL
from listening_stats.store.history import HistoryStore
from listening_stats.store.snapshots import SnapshotStore


def _recent(*played_at: str) -> dict[str, object]:
    return {
        "items": [
            {"track": {"id": f"t{i}", "name": f"Track {i}", "artists": [{"name": "Artist"}]}, "played_at": ts}
            for i, ts in enumerate(played_at)
        ]
    }


def _seed(settings, make_play, make_history) -> None:
    HistoryStore(settings.merged_history_dir).save(make_history([make_play(played_at="2024-05-30T10:00:00.000Z")]))


async def test_no_history_means_process(settings, token_provider) -> None:
    """Without history the workflow should run."""
    assert await check_for_new_plays(settings, token_provider) == NEW_DATA_FOUND


async def test_no_credentials_means_process(settings, make_play, make_history) -> None:
    """If the check cannot reach Spotify, the workflow runs anyway."""
    _seed(settings, make_play, make_history)

    assert await check_for_new_plays(settings, None) == NEW_DATA_FOUND


@respx.mock
async def test_newer_play_found(settings, make_play, make_history, token_provider) -> None:
    """A play after the history's latest entry means new data."""
    _seed(settings, make_play, make_history)
    route = respx.get(RECENTLY_PLAYED_URL).mock(
        return_value=httpx.Response(200, json=_recent("2024-05-31T08:00:00.000Z", "2024-05-29T08:00:00.000Z"))
    )

    assert await check_for_new_plays(settings, token_provider) == NEW_DATA_FOUND
    assert "limit=10" in str(route.calls[0].request.url)


@respx.mock
async def test_nothing_newer(settings, make_play, make_history, token_provider) -> None:
    """Only older or equal plays means no new data."""
    _seed(settings, make_play, make_history)
    respx.get(RECENTLY_PLAYED_URL).mock(
        return_value=httpx.Response(200, json=_recent("2024-05-30T10:00:00.000Z", "2024-05-29T08:00:00.000Z"))
    )

    assert await check_for_new_plays(settings, token_provider) == NO_NEW_DATA


@respx.mock
async def test_empty_response(settings, make_play, make_history, token_provider) -> None:
    """No plays at all means no new data."""
    _seed(settings, make_play, make_history)
    respx.get(RECENTLY_PLAYED_URL).mock(return_value=httpx.Response(200, json={"items": []}))

    assert await check_for_new_plays(settings, token_provider) == NO_NEW_DATA


@respx.mock
async def test_api_failure_means_process(settings, make_play, make_history, token_provider, fake_sleep) -> None:
    """An exhausted rate limit aborts the check, which then lets the workflow run."""
    _seed(settings, make_play, make_history)
    settings.SPOTIFY_MAX_RETRIES = 1
    respx.get(RECENTLY_PLAYED_URL).mock(return_value=httpx.Response(429, headers={"Retry-After": "1"}))

    assert await check_for_new_plays(settings, token_provider, sleep=fake_sleep) == NEW_DATA_FOUND
    assert fake_sleep.delays == [1.0]


@respx.mock
async def test_legacy_history_is_compared(settings, make_play, make_history, token_provider) -> None:
    """A history that exists only in the legacy directory is still used for the comparison."""
    SnapshotStore(settings.complete_history_dir, Snapshots.COMPLETE_HISTORY).write_json(
        make_history([make_play(played_at="2024-05-30T10:00:00.000Z")]).to_json_dict()
    )
    respx.get(RECENTLY_PLAYED_URL).mock(return_value=httpx.Response(200, json=_recent("2024-05-29T08:00:00.000Z")))

    assert await check_for_new_plays(settings, token_provider) == NO_NEW_DATA
