"""Timestamp-named snapshot generations in a single directory.

A snapshot file is named ``<prefix>-<unix ms>.json``. The newest generation
is the one with the highest numeric timestamp. Files are created exclusively
and never overwritten.
"""

import json
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from listening_stats.constants import SnapshotKind
from listening_stats.store.exceptions import SnapshotCorruptError, SnapshotError, SnapshotWriteError
from listening_stats.timestamps import datetime_to_unix_ms, utc_now

logger = logging.getLogger(__name__)


def current_unix_ms() -> int:
    return datetime_to_unix_ms(utc_now())


@dataclass(frozen=True, slots=True)
class Snapshot:
    path: Path
    timestamp_ms: int


def dump_json(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)


class SnapshotStore:
    """Generations of one snapshot kind in one directory."""

    def __init__(
        self,
        directory: Path,
        kind: SnapshotKind,
        *,
        clock: Callable[[], int] = current_unix_ms,
    ) -> None:
        self.directory = directory
        self.kind = kind
        self.clock = clock

    def snapshots(self) -> list[Snapshot]:
        """All generations, oldest first. A missing directory holds none."""
        if not self.directory.is_dir():
            return []
        snapshots = []
        for path in self.directory.iterdir():
            match = self.kind.pattern.match(path.name)
            if match and path.is_file():
                snapshots.append(Snapshot(path, int(match.group(1))))
        return sorted(snapshots, key=lambda s: s.timestamp_ms)

    def latest(self) -> Snapshot | None:
        snapshots = self.snapshots()
        return snapshots[-1] if snapshots else None

    def path_for(self, timestamp_ms: int) -> Path:
        return self.directory / self.kind.filename(timestamp_ms)

    def read_json(self, snapshot: Snapshot) -> Any:
        """Parse a snapshot file.

        Raises:
            SnapshotCorruptError: The file is not valid JSON.
            SnapshotError: The file could not be read.
        """
        try:
            text = snapshot.path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise SnapshotCorruptError(snapshot.path, str(exc)) from exc
        except OSError as exc:
            raise SnapshotError(f"Cannot read snapshot {snapshot.path}: {exc}") from exc
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise SnapshotCorruptError(snapshot.path, str(exc)) from exc

    def write_json(self, payload: Any, *, timestamp_ms: int | None = None) -> Snapshot:
        """Write a new generation. The timestamp is bumped until the name is free."""
        self.directory.mkdir(parents=True, exist_ok=True)
        timestamp = timestamp_ms if timestamp_ms is not None else self.clock()
        text = dump_json(payload)
        while True:
            path = self.path_for(timestamp)
            try:
                with path.open("x", encoding="utf-8") as f:
                    f.write(text)
            except FileExistsError:
                timestamp += 1
                continue
            except OSError as exc:
                path.unlink(missing_ok=True)
                raise SnapshotWriteError(path, str(exc)) from exc
            logger.info("Wrote snapshot %s", path)
            return Snapshot(path, timestamp)

    def remove(self, snapshots: Iterable[Snapshot]) -> int:
        """Delete the given generations; returns how many were removed."""
        removed = 0
        for snapshot in snapshots:
            try:
                snapshot.path.unlink()
            except FileNotFoundError:
                continue
            removed += 1
        return removed
