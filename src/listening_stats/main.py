"""Command-line entry point for the listening-stats pipeline."""

import argparse
import asyncio
import logging
from collections.abc import Sequence

from listening_stats.constants import ExitCode, JobName
from listening_stats.jobs import (
    check_for_new_plays,
    collect_recent_plays,
    enrich_history_metadata,
    generate_outputs,
    merge_pending_plays,
    run_pipeline,
)
from listening_stats.logging import configure_logging
from listening_stats.settings import PipelineSettings
from listening_stats.store.exceptions import SnapshotError
from listening_stats.tokens import CredentialProvider, resolve_credential_provider

logger = logging.getLogger(__name__)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="listening-stats",
        description="Merge Spotify listening history and build ranked top songs, albums and artists.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override LOG_LEVEL (DEBUG, INFO, WARNING, ...).",
    )
    parser.add_argument(
        "--log-format",
        choices=("text", "json"),
        default=None,
        help="Override LOG_FORMAT.",
    )
    sub = parser.add_subparsers(dest="job", required=True)
    sub.add_parser(JobName.COLLECT, help="Save the latest recently-played tracks to the temp directory.")
    sub.add_parser(JobName.CHECK, help="Exit 0 if Spotify has plays newer than the history, 1 otherwise.")
    sub.add_parser(JobName.MERGE, help="Merge pending recent plays into a new history generation.")
    sub.add_parser(JobName.GENERATE, help="Build and write the ranked output files.")
    sub.add_parser(JobName.ENRICH_HISTORY, help="Fill missing album, link and duration metadata on the history.")
    sub.add_parser(JobName.RUN, help="Merge, then generate.")
    return parser.parse_args(argv)


async def dispatch(job: str, settings: PipelineSettings, provider: CredentialProvider | None) -> int:
    match job:
        case JobName.COLLECT:
            return await collect_recent_plays(settings, provider)
        case JobName.CHECK:
            return await check_for_new_plays(settings, provider)
        case JobName.MERGE:
            return merge_pending_plays(settings)
        case JobName.GENERATE:
            return await generate_outputs(settings, provider)
        case JobName.ENRICH_HISTORY:
            return await enrich_history_metadata(settings, provider)
        case JobName.RUN:
            return await run_pipeline(settings, provider)
    raise ValueError(f"Unknown job: {job}")


def main(argv: Sequence[str] | None = None, settings: PipelineSettings | None = None) -> int:
    args = parse_args(argv)
    settings = settings or PipelineSettings()
    configure_logging(args.log_level or settings.LOG_LEVEL, args.log_format or settings.LOG_FORMAT, job=args.job)

    provider = resolve_credential_provider(settings)
    try:
        return int(asyncio.run(dispatch(args.job, settings, provider)))
    except SnapshotError as exc:
        logger.error("%s failed: %s", args.job, exc)
        return ExitCode.FAILURE
    except Exception:
        logger.exception("%s failed with an unexpected error", args.job)
        return ExitCode.FAILURE


def run() -> None:
    raise SystemExit(main())


if __name__ == "__main__":
    run()
