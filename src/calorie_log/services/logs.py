"""Daily calorie log service."""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Protocol

from calorie_log.domain.estimate import EstimateOutcome
from calorie_log.domain.logs import DEFAULT_LABEL, LogEntry
from calorie_log.services.normalize import (
    coerce_id,
    normalize_log,
    now_ms,
    to_non_negative_int,
)


class LogRepository(Protocol):
    """Persistence interface for log entries."""

    def put_log(self, entry: LogEntry) -> LogEntry:
        """Insert an entry, or fully replace the one with the same id."""

    def get_log(self, log_id: int) -> LogEntry | None:
        """Return an entry by id, if present."""

    def delete_log(self, log_id: int) -> None:
        """Delete an entry by id; absent ids are ignored."""

    def list_logs_by_date(self, date: str) -> list[LogEntry]:
        """Return entries whose date equals ``date``, newest first."""

    def list_logs(self) -> list[LogEntry]:
        """Return every entry in id order."""


def local_today() -> str:
    """Return the caller's local calendar day as ``YYYY-MM-DD``."""
    return datetime.now().date().isoformat()  # noqa: DTZ005


@dataclass
class LogService:
    """Service that records, edits and reads meal log entries."""

    repository: LogRepository
    clock: Callable[[], int] = now_ms
    today: Callable[[], str] = local_today

    def add_log(self, payload: Mapping[str, object]) -> LogEntry:
        """Record a new entry; any id in the payload is ignored."""
        entry = normalize_log(payload, self.clock())
        entry = replace(entry, id=None, date=entry.date or self.today())
        return self.repository.put_log(entry)

    def update_log(self, payload: Mapping[str, object]) -> LogEntry:
        """Fully replace the entry with the payload's id, or insert it."""
        entry = normalize_log(payload, self.clock())
        if not entry.date:
            entry = replace(entry, date=self.today())
        if entry.id is not None and not payload.get("createdAt"):
            existing = self.repository.get_log(entry.id)
            if existing is not None:
                entry = replace(entry, created_at=existing.created_at)
        return self.repository.put_log(entry)

    def set_calories(self, log_id: object, calories: object) -> LogEntry | None:
        """Overwrite the final calorie value of an existing entry."""
        entry = self.get_log(log_id)
        if entry is None:
            return None
        updated = replace(
            entry,
            calories=to_non_negative_int(calories),
            updated_at=self.clock(),
        )
        return self.repository.put_log(updated)

    def delete_log(self, log_id: object) -> None:
        """Delete an entry; unknown ids are a no-op."""
        resolved = coerce_id(log_id)
        if resolved is None:
            return
        self.repository.delete_log(resolved)

    def get_log(self, log_id: object) -> LogEntry | None:
        resolved = coerce_id(log_id)
        if resolved is None:
            return None
        return self.repository.get_log(resolved)

    def get_logs_by_date(self, date: str) -> list[LogEntry]:
        """Return the entries recorded on exactly this date."""
        return self.repository.list_logs_by_date(date)

    def get_all_logs(self) -> list[LogEntry]:
        return self.repository.list_logs()

    def day_total(self, date: str) -> int:
        """Sum the calories logged on a date."""
        return sum(entry.calories for entry in self.get_logs_by_date(date))

    def log_from_estimate(  # noqa: PLR0913
        self,
        outcome: EstimateOutcome,
        *,
        date: str | None = None,
        label: str | None = None,
        note: str = "",
        calories: int | None = None,
    ) -> LogEntry:
        """Persist an estimate, optionally with caller-adjusted calories."""
        result = outcome.result
        matched = outcome.matched_candidate()
        return self.add_log(
            {
                "date": date or self.today(),
                "label": label or result.label or DEFAULT_LABEL,
                "calories": result.estimated_calories if calories is None else calories,
                "rangeLow": result.range_low,
                "rangeHigh": result.range_high,
                "note": note,
                "breakdown": [item.model_dump() for item in result.breakdown],
                "confidence": result.confidence,
                "matchedFoodId": matched.id if matched else None,
            }
        )
