"""Shared fixtures: fixed clock, settings rooted in tmp_path, and record builders."""

from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

import pytest

from listening_stats.history.merge import merge_recent_plays
from listening_stats.history.models import AlbumRef, ListeningHistory, PlayEvent
from listening_stats.settings import PipelineSettings
from listening_stats.spotify.models import SpotifyImage

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


def _make_play(
    name: str = "Track A",
    artist: str = "Artist A",
    played_at: str = "2024-05-30T10:00:00.000Z",
    *,
    track_id: str = "track-a",
    album: str = "Album A",
    album_id: str = "",
    duration_ms: int = 200_000,
    image_url: str | None = None,
) -> PlayEvent:
    return PlayEvent(
        track_id=track_id,
        name=name,
        artists=[artist],
        album=AlbumRef(
            id=album_id,
            name=album,
            images=[SpotifyImage(url=image_url, height=640, width=640)] if image_url else [],
        ),
        duration_ms=duration_ms,
        played_at=played_at,
        external_urls={"spotify": f"https://open.spotify.com/track/{track_id}"},
    )


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_play() -> Callable[..., PlayEvent]:
    return _make_play


@pytest.fixture
def make_history() -> Callable[[list[PlayEvent]], ListeningHistory]:
    def _build(plays: list[PlayEvent]) -> ListeningHistory:
        history, _ = merge_recent_plays(ListeningHistory(), plays, now=NOW)
        return history

    return _build


@pytest.fixture
def settings(tmp_path: Path) -> PipelineSettings:
    """Settings with all storage under tmp_path and no credentials."""
    return PipelineSettings(
        DATA_DIR=str(tmp_path / "data"),
        TEMP_DIR=str(tmp_path / "temp"),
        SPOTIFY_CLIENT_ID="",
        SPOTIFY_CLIENT_SECRET="",
        SPOTIFY_REFRESH_TOKEN="",
        SPOTIFY_BATCH_PAUSE=0,
    )


class StaticTokenProvider:
    """Credential provider that hands out a fixed token."""

    def __init__(self, token: str = "test-token", valid: bool = True) -> None:
        self.token = token
        self.valid = valid
        self.refreshes = 0

    async def get_valid_access_token(self) -> str:
        return self.token

    async def refresh_access_token(self) -> str:
        self.refreshes += 1
        return self.token

    async def test_token(self, token: str) -> bool:
        return self.valid


@pytest.fixture
def token_provider() -> StaticTokenProvider:
    return StaticTokenProvider()


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def fake_sleep() -> RecordingSleep:
    return RecordingSleep()
