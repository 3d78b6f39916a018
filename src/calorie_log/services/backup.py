"""Export and import of the whole store as a portable snapshot."""

import json
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

from calorie_log.domain.backup import SNAPSHOT_VERSION, ImportReport
from calorie_log.domain.foods import Food
from calorie_log.domain.logs import LogEntry
from calorie_log.errors import ValidationError
from calorie_log.services.normalize import normalize_food, normalize_log, now_ms

logger = logging.getLogger(__name__)


class BackupRepository(Protocol):
    """Persistence interface spanning both collections."""

    def list_foods(self) -> list[Food]:
        """Return every food, most recently updated first."""

    def list_logs(self) -> list[LogEntry]:
        """Return every log entry in id order."""

    def wipe_all(self) -> None:
        """Clear both collections in one transaction."""

    def put_records(self, foods: Sequence[Food], logs: Sequence[LogEntry]) -> None:
        """Write foods and logs with put semantics in one transaction."""


@dataclass
class BackupService:
    """Builds snapshots of the store and restores from them."""

    repository: BackupRepository
    clock: Callable[[], int] = now_ms

    def export_data(self) -> dict[str, object]:
        """Return a snapshot holding every food and log entry."""
        foods = self.repository.list_foods()
        logs = self.repository.list_logs()
        return {
            "version": SNAPSHOT_VERSION,
            "exportedAt": _iso_timestamp(self.clock()),
            "foods": [food.to_record() for food in foods],
            "logs": [entry.to_record() for entry in logs],
        }

    def import_data(self, snapshot: object, *, wipe_first: bool = True) -> ImportReport:
        """Restore a snapshot, honouring the record ids it carries.

        Every record is validated and normalized before anything is written.
        The wipe and the writes are separate transactions: a failure after the
        wipe leaves the store empty or partial.
        """
        if not isinstance(snapshot, Mapping):
            raise ValidationError("Invalid JSON payload.")
        version = snapshot.get("version")
        if isinstance(version, int) and version > SNAPSHOT_VERSION:
            logger.warning(
                "Importing snapshot version %s with reader version %s",
                version,
                SNAPSHOT_VERSION,
            )
        raw_foods = _records(snapshot.get("foods"), "food")
        raw_logs = _records(snapshot.get("logs"), "log")

        now = self.clock()
        foods = [normalize_food(raw, now, keep_updated_at=True) for raw in raw_foods]
        logs = [normalize_log(raw, now, keep_updated_at=True) for raw in raw_logs]

        if wipe_first:
            self.repository.wipe_all()
            logger.info("Wiped store before import")
        else:
            self._warn_on_overwrite(foods, logs)

        self.repository.put_records(foods, logs)
        logger.info("Imported %s foods and %s log entries", len(foods), len(logs))
        return ImportReport(foods=len(foods), logs=len(logs), wiped=wipe_first)

    def wipe_all(self) -> None:
        """Delete every food and log entry."""
        self.repository.wipe_all()
        logger.info("Wiped all foods and log entries")

    def _warn_on_overwrite(self, foods: list[Food], logs: list[LogEntry]) -> None:
        existing_foods = {food.id for food in self.repository.list_foods()}
        existing_logs = {entry.id for entry in self.repository.list_logs()}
        for food in foods:
            if food.id is not None and food.id in existing_foods:
                logger.warning("Import overwrites existing food id %s", food.id)
        for entry in logs:
            if entry.id is not None and entry.id in existing_logs:
                logger.warning("Import overwrites existing log id %s", entry.id)


def dumps(snapshot: Mapping[str, object]) -> str:
    """Serialize a snapshot to JSON text for a backup file."""
    return json.dumps(snapshot, indent=2, ensure_ascii=False)


def loads(text: str | bytes) -> object:
    """Parse backup file text; malformed JSON is a validation error."""
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Invalid JSON payload: {exc.msg}.") from exc


def backup_filename(exported_at: str) -> str:
    """Name a backup file after its ISO export time, down to the second."""
    stamp = exported_at[:19].replace(":", "-").replace("T", "-")
    return f"calorie-log-backup-{stamp}.json"


def _records(value: object, kind: str) -> list[Mapping[str, object]]:
    if not isinstance(value, list):
        return []
    for index, item in enumerate(value):
        if not isinstance(item, Mapping):
            raise ValidationError(f"Invalid {kind} record at index {index}.")
    return value


def _iso_timestamp(millis: int) -> str:
    moment = datetime.fromtimestamp(millis / 1000, tz=UTC)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")
