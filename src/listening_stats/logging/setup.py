"""Logging configuration for the pipeline jobs."""

import logging
import sys

from listening_stats.constants import SERVICE_NAME
from listening_stats.logging.formatter import JSONLogFormatter

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO", fmt: str = "text", *, job: str | None = None) -> None:
    """Install a single stdout handler on the root logger.

    ``fmt`` is ``"json"`` for one JSON object per line, anything else for
    plain text.
    """
    resolved = logging.getLevelName(level.upper())
    root = logging.getLogger()
    root.setLevel(resolved if isinstance(resolved, int) else logging.INFO)
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    handler = logging.StreamHandler(sys.stdout)
    if fmt.lower() == "json":
        handler.setFormatter(JSONLogFormatter(service=SERVICE_NAME, job=job))
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    root.addHandler(handler)
