"""JSON log formatter for structured logging output."""

import json
import logging
from datetime import UTC, datetime

from listening_stats.constants import SERVICE_NAME


class JSONLogFormatter(logging.Formatter):
    """Emit log records as single-line JSON objects.

    Output format::

        {"timestamp": "...", "level": "INFO", "service": "listening-stats",
         "logger": "listening_stats.jobs.merge", "message": "...", "job": "merge"}
    """

    def __init__(self, service: str = SERVICE_NAME, job: str | None = None) -> None:
        super().__init__()
        self._service = service
        self._job = job

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "service": self._service,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Per-record job overrides the one the formatter was built with
        job = getattr(record, "job", None) or self._job
        if job:
            entry["job"] = str(job)

        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)
