"""Generate job: rebuild the ranked projections and write a new output generation."""

import asyncio
import logging
from datetime import datetime

from listening_stats.constants import ExitCode
from listening_stats.enrichment.adapter import MetadataEnricher, carry_forward
from listening_stats.enrichment.stats import apply_stats_images
from listening_stats.history.models import ListeningHistory
from listening_stats.rankings.projections import ProjectionBuilder, Projections
from listening_stats.rankings.rules import ConsolidationRules
from listening_stats.rankings.stats import build_detailed_stats
from listening_stats.settings import PipelineSettings
from listening_stats.spotify.client import SleepFunc
from listening_stats.store.history import HistoryStore
from listening_stats.store.outputs import CleanedOutputStore
from listening_stats.timestamps import utc_now
from listening_stats.tokens import CredentialProvider, connect_spotify

logger = logging.getLogger(__name__)


def build_projections(settings: PipelineSettings, history: ListeningHistory, *, now: datetime) -> Projections:
    builder = ProjectionBuilder(
        ConsolidationRules.load(settings.consolidation_rules_path),
        now=now,
        movement_window_days=settings.MOVEMENT_WINDOW_DAYS,
        songs_limit=settings.TOP_SONGS_LIMIT,
        albums_limit=settings.TOP_ALBUMS_LIMIT,
        artists_limit=settings.TOP_ARTISTS_LIMIT,
        albums_with_songs_limit=settings.ALBUMS_WITH_SONGS_LIMIT,
    )
    return builder.build_all(history)


async def generate_outputs(
    settings: PipelineSettings,
    provider: CredentialProvider | None,
    *,
    now: datetime | None = None,
    sleep: SleepFunc = asyncio.sleep,
) -> ExitCode:
    """History → projections and detailed stats → enrichment → one output generation.

    Enrichment is skipped when no working credential is available; the
    outputs are complete and ranked either way.
    """
    now = now or utc_now()
    history = HistoryStore(settings.merged_history_dir, settings.complete_history_dir).load_latest()
    if history is None:
        logger.info("No listening history found, nothing to generate")
        return ExitCode.SUCCESS

    projections = build_projections(settings, history, now=now)
    stats = build_detailed_stats(history)

    outputs = CleanedOutputStore(settings.cleaned_data_dir)
    carry_forward(projections, outputs.load_previous())

    client = await connect_spotify(provider, settings, sleep=sleep)
    if client is None:
        logger.info("Skipping Spotify enrichment")
        apply_stats_images(stats, projections)
    else:
        await MetadataEnricher(client).enrich(projections, stats=stats)

    total_events = history.metadata.total_listening_events or sum(song.play_count for song in history.songs)
    generation = outputs.save(
        projections,
        detailed_stats=stats,
        total_listening_events=total_events,
        generated_at=now,
    )
    logger.info(
        "Generated %d songs, %d albums, %d artists, %d albums with songs (generation %d)",
        len(projections.songs.items),
        len(projections.albums.items),
        len(projections.artists.items),
        len(projections.albums_with_songs.items),
        generation.timestamp_ms,
    )
    return ExitCode.SUCCESS
