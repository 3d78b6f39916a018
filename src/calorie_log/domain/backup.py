"""Domain models for backup and restore."""

from dataclasses import dataclass

SNAPSHOT_VERSION = 1


@dataclass(frozen=True)
class ImportReport:
    """Outcome of a snapshot import."""

    foods: int
    logs: int
    wiped: bool
