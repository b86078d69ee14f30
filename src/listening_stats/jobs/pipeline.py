"""Run the merge and generate jobs back to back."""

import asyncio
from datetime import datetime

from listening_stats.constants import ExitCode
from listening_stats.jobs.generate import generate_outputs
from listening_stats.jobs.merge import merge_pending_plays
from listening_stats.settings import PipelineSettings
from listening_stats.spotify.client import SleepFunc
from listening_stats.tokens import CredentialProvider


async def run_pipeline(
    settings: PipelineSettings,
    provider: CredentialProvider | None,
    *,
    now: datetime | None = None,
    sleep: SleepFunc = asyncio.sleep,
) -> ExitCode:
    merged = merge_pending_plays(settings, now=now)
    if merged != ExitCode.SUCCESS:
        return merged
    return await generate_outputs(settings, provider, now=now, sleep=sleep)
