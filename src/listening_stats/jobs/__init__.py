"""Run-to-completion pipeline jobs."""

from listening_stats.jobs.check import check_for_new_plays
from listening_stats.jobs.collect import collect_recent_plays
from listening_stats.jobs.enrich_history import enrich_history_metadata
from listening_stats.jobs.generate import generate_outputs
from listening_stats.jobs.merge import merge_pending_plays
from listening_stats.jobs.pipeline import run_pipeline

__all__ = [
    "check_for_new_plays",
    "collect_recent_plays",
    "enrich_history_metadata",
    "generate_outputs",
    "merge_pending_plays",
    "run_pipeline",
]
