"""Tests for the collect job."""

import json

import httpx
import respx

from listening_stats.constants import ExitCode
from listening_stats.jobs.collect import collect_recent_plays
from listening_stats.spotify.constants import RECENTLY_PLAYED_URL
from listening_stats.store.history import RecentPlaysStore


async def test_without_credentials(settings) -> None:
    """No credential, nothing collected, still a success."""
    assert await collect_recent_plays(settings, None) == ExitCode.SUCCESS
    assert RecentPlaysStore(settings.temp_dir).pending() == []


@respx.mock
async def test_saves_recent_plays(settings, token_provider) -> None:
    """Recently-played items are saved as one raw batch."""
    route = respx.get(RECENTLY_PLAYED_URL).mock(
        return_value=httpx.Response(
            200,
            json={
                "items": [
                    {
                        "track": {
                            "id": "t1",
                            "name": "Windowlicker",
                            "duration_ms": 366_000,
                            "artists": [{"id": "a1", "name": "Aphex Twin"}],
                            "album": {"id": "al1", "name": "Windowlicker", "images": []},
                        },
                        "played_at": "2024-05-31T08:00:00.000Z",
                    }
                ]
            },
        )
    )

    assert await collect_recent_plays(settings, token_provider) == ExitCode.SUCCESS

    assert "limit=50" in str(route.calls[0].request.url)
    pending = RecentPlaysStore(settings.temp_dir).pending()
    assert len(pending) == 1
    data = json.loads(pending[0].path.read_text(encoding="utf-8"))
    assert data[0]["id"] == "t1"
    assert data[0]["artists"] == ["Aphex Twin"]
    assert data[0]["played_at"] == "2024-05-31T08:00:00.000Z"


@respx.mock
async def test_empty_response_writes_nothing(settings, token_provider) -> None:
    """An empty page writes no file."""
    respx.get(RECENTLY_PLAYED_URL).mock(return_value=httpx.Response(200, json={"items": []}))

    assert await collect_recent_plays(settings, token_provider) == ExitCode.SUCCESS
    assert RecentPlaysStore(settings.temp_dir).pending() == []
