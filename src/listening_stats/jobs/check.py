"""New-data check: are there plays newer than the latest history entry?

Exit ``0`` when new plays exist or when the check cannot decide, ``1``
when Spotify reports nothing newer. A scheduler uses this to skip a run.
"""

import asyncio
import logging

import httpx

from listening_stats.constants import NEW_DATA_FOUND, NO_NEW_DATA
from listening_stats.settings import PipelineSettings
from listening_stats.spotify.client import SleepFunc
from listening_stats.spotify.exceptions import SpotifyClientError
from listening_stats.store.exceptions import SnapshotError
from listening_stats.store.history import HistoryStore
from listening_stats.timestamps import parse_timestamp
from listening_stats.tokens import CredentialProvider, connect_spotify

logger = logging.getLogger(__name__)


async def check_for_new_plays(
    settings: PipelineSettings,
    provider: CredentialProvider | None,
    *,
    sleep: SleepFunc = asyncio.sleep,
) -> int:
    try:
        return await _check(settings, provider, sleep)
    except (SnapshotError, SpotifyClientError, httpx.HTTPError) as exc:
        logger.warning("New-data check failed, proceeding with processing: %s", exc)
        return NEW_DATA_FOUND


async def _check(settings: PipelineSettings, provider: CredentialProvider | None, sleep: SleepFunc) -> int:
    history = HistoryStore(settings.merged_history_dir, settings.complete_history_dir).load_latest()
    if history is None:
        logger.info("No existing history found, will process all data")
        return NEW_DATA_FOUND

    latest = parse_timestamp(history.metadata.date_range.latest)
    if latest is None:
        logger.info("No latest play time in history, will process all data")
        return NEW_DATA_FOUND
    logger.info("Latest play in history: %s", history.metadata.date_range.latest)

    client = await connect_spotify(provider, settings, sleep=sleep)
    if client is None:
        logger.info("Cannot check Spotify for new plays, proceeding with processing")
        return NEW_DATA_FOUND

    response = await client.get_recently_played(limit=settings.CHECK_PLAYS_LIMIT)
    if not response.items:
        logger.info("No recent plays in the Spotify response")
        return NO_NEW_DATA

    newer = 0
    for item in response.items:
        played_at = parse_timestamp(item.played_at)
        is_new = played_at is not None and played_at > latest
        newer += is_new
        logger.debug("%s %r played at %s", "NEW" if is_new else "OLD", item.track.name, item.played_at)

    if newer:
        logger.info("%d of the last %d plays are new since the last run", newer, len(response.items))
        return NEW_DATA_FOUND
    logger.info("No new plays since the last run")
    return NO_NEW_DATA
