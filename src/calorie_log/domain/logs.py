"""Domain models for the daily calorie log."""

from dataclasses import dataclass, replace
from typing import Literal

Confidence = Literal["low", "medium", "high"]

CONFIDENCE_LEVELS: tuple[str, ...] = ("low", "medium", "high")
DEFAULT_CONFIDENCE: Confidence = "medium"
DEFAULT_LABEL = "Food"


@dataclass(frozen=True)
class BreakdownItem:
    """One component of a logged meal."""

    item: str
    calories: int

    def to_record(self) -> dict[str, object]:
        return {"item": self.item, "calories": self.calories}


@dataclass(frozen=True)
class LogEntry:
    """A single recorded meal on one calendar date (``YYYY-MM-DD``)."""

    id: int | None
    date: str
    label: str
    calories: int
    range_low: int | None
    range_high: int | None
    note: str
    breakdown: tuple[BreakdownItem, ...]
    confidence: Confidence
    matched_food_id: int | None
    created_at: int
    updated_at: int

    def with_id(self, log_id: int) -> "LogEntry":
        """Return a copy carrying the store-assigned id."""
        return replace(self, id=log_id)

    def to_record(self) -> dict[str, object]:
        """Return the portable record shape used by snapshots and the API."""
        return {
            "id": self.id,
            "date": self.date,
            "label": self.label,
            "calories": self.calories,
            "rangeLow": self.range_low,
            "rangeHigh": self.range_high,
            "note": self.note,
            "breakdown": [item.to_record() for item in self.breakdown],
            "confidence": self.confidence,
            "matchedFoodId": self.matched_food_id,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
