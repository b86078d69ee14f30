"""Snapshot store exception hierarchy."""

from pathlib import Path


class SnapshotError(Exception):
    """Base exception for snapshot store failures."""


class SnapshotCorruptError(SnapshotError):
    """A snapshot file exists but cannot be parsed into the expected shape."""

    def __init__(self, path: Path, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Malformed snapshot {path}: {detail}")


class SnapshotWriteError(SnapshotError):
    """A snapshot generation could not be written completely."""

    def __init__(self, path: Path, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Failed to write snapshot {path}: {detail}")
