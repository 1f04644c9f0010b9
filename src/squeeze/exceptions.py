"""Custom exceptions for the squeeze monitor.

Snapshot and state errors live here to avoid circular imports between the
data, engine and runner modules.
"""

from pathlib import Path


class SqueezeError(Exception):
    """Base exception for all squeeze monitor errors."""


class SnapshotError(SqueezeError):
    """Raised when an upstream snapshot cannot be used."""


class MissingMandatoryInputError(SnapshotError):
    """Raised when the funding or RSI snapshot is absent or unparseable.

    Fatal for the run: no output is written and the process exits non-zero.
    """

    def __init__(self, snapshot: str, path: Path, detail: str) -> None:
        self.snapshot = snapshot
        self.path = path
        self.detail = detail
        super().__init__(f"{snapshot} snapshot unusable at {path}: {detail}")


class MalformedEntryError(SnapshotError):
    """Raised when a single instrument record inside a snapshot is unparseable."""
