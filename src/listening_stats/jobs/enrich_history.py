"""Enrich-history job: fill missing track metadata on the latest history generation."""

import asyncio
import logging
from datetime import datetime

from listening_stats.constants import ExitCode
from listening_stats.enrichment.history import enrich_history
from listening_stats.settings import PipelineSettings
from listening_stats.spotify.client import SleepFunc
from listening_stats.store.history import HistoryStore
from listening_stats.timestamps import format_timestamp, utc_now
from listening_stats.tokens import CredentialProvider, connect_spotify

logger = logging.getLogger(__name__)


async def enrich_history_metadata(
    settings: PipelineSettings,
    provider: CredentialProvider | None,
    *,
    now: datetime | None = None,
    sleep: SleepFunc = asyncio.sleep,
) -> ExitCode:
    """Write a new history generation when any song gained metadata.

    Without a history or a working credential this is a successful no-op.
    """
    store = HistoryStore(settings.merged_history_dir, settings.complete_history_dir)
    history = store.load_latest()
    if history is None:
        logger.info("No listening history found, nothing to enrich")
        return ExitCode.SUCCESS

    client = await connect_spotify(provider, settings, sleep=sleep)
    if client is None:
        logger.info("Skipping history enrichment")
        return ExitCode.SUCCESS

    report = await enrich_history(history, client)
    if not report.enriched:
        logger.info("No history songs gained metadata, no new generation written")
        return ExitCode.SUCCESS

    history.metadata.last_updated = format_timestamp(now or utc_now())
    snapshot = store.save(history)
    logger.info("Saved enriched history to %s (%d songs enriched)", snapshot.path, report.enriched)
    return ExitCode.SUCCESS
