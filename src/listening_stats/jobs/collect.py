"""Collect job: save the most recent plays as a raw batch for the next merge."""

import asyncio
import logging

from listening_stats.constants import ExitCode
from listening_stats.history.normalizers import play_event_from_history_item
from listening_stats.settings import PipelineSettings
from listening_stats.spotify.client import SleepFunc
from listening_stats.store.history import RecentPlaysStore
from listening_stats.tokens import CredentialProvider, connect_spotify

logger = logging.getLogger(__name__)


async def collect_recent_plays(
    settings: PipelineSettings,
    provider: CredentialProvider | None,
    *,
    sleep: SleepFunc = asyncio.sleep,
) -> ExitCode:
    """Fetch ``RECENT_PLAYS_LIMIT`` recent plays and write them to the temp directory.

    Without a working credential there is nothing to collect and the job
    succeeds without writing. API failures propagate.
    """
    client = await connect_spotify(provider, settings, sleep=sleep)
    if client is None:
        logger.info("Skipping recent-play collection")
        return ExitCode.SUCCESS

    response = await client.get_recently_played(limit=settings.RECENT_PLAYS_LIMIT)
    if not response.items:
        logger.info("No recent plays returned by Spotify")
        return ExitCode.SUCCESS

    plays = [play_event_from_history_item(item) for item in response.items]
    snapshot = RecentPlaysStore(settings.temp_dir).save(plays)
    logger.info("Saved %d recent plays to %s", len(plays), snapshot.path)
    return ExitCode.SUCCESS
