"""Canonicalization of raw food and log payloads into storage-ready records."""

import math
import time
from collections.abc import Mapping

from calorie_log.domain.foods import Food
from calorie_log.domain.logs import (
    CONFIDENCE_LEVELS,
    DEFAULT_CONFIDENCE,
    DEFAULT_LABEL,
    BreakdownItem,
    LogEntry,
)
from calorie_log.errors import ValidationError

# Largest value a SQLite INTEGER column can hold.
MAX_STORED_INT = 2**63 - 1


def normalize_food(
    raw: Mapping[str, object], now: int, *, keep_updated_at: bool = False
) -> Food:
    """Build a canonical ``Food`` from a payload of mixed origin.

    ``now`` is a millisecond timestamp. ``createdAt`` survives when present;
    ``updatedAt`` is set to ``now`` unless ``keep_updated_at`` is set and the
    payload carries one (restore from a snapshot).
    """
    payload = _require_mapping(raw, "food")
    return Food(
        id=coerce_id(payload.get("id")),
        name=_to_text(payload.get("name")),
        calories=to_non_negative_int(payload.get("calories")),
        portion=_to_text(payload.get("portion")),
        tags=normalize_tags(payload.get("tags")),
        notes=_to_text(payload.get("notes")),
        created_at=_timestamp(payload.get("createdAt"), now),
        updated_at=_timestamp(payload.get("updatedAt"), now)
        if keep_updated_at
        else now,
    )


def normalize_log(
    raw: Mapping[str, object], now: int, *, keep_updated_at: bool = False
) -> LogEntry:
    """Build a canonical ``LogEntry`` from a payload of mixed origin."""
    payload = _require_mapping(raw, "log entry")
    confidence = _to_text(payload.get("confidence")).lower()
    if confidence not in CONFIDENCE_LEVELS:
        confidence = DEFAULT_CONFIDENCE
    return LogEntry(
        id=coerce_id(payload.get("id")),
        date=_to_text(payload.get("date")),
        label=_to_text(payload.get("label")) or DEFAULT_LABEL,
        calories=to_non_negative_int(payload.get("calories")),
        range_low=_to_optional_int(payload.get("rangeLow")),
        range_high=_to_optional_int(payload.get("rangeHigh")),
        note=_to_text(payload.get("note")),
        breakdown=normalize_breakdown(payload.get("breakdown")),
        confidence=confidence,
        matched_food_id=coerce_id(payload.get("matchedFoodId")),
        created_at=_timestamp(payload.get("createdAt"), now),
        updated_at=_timestamp(payload.get("updatedAt"), now)
        if keep_updated_at
        else now,
    )


def normalize_tags(value: object) -> tuple[str, ...]:
    """Accept a sequence or a comma separated string of tags."""
    if not value:
        return ()
    if isinstance(value, list | tuple):
        parts = [_to_text(part) for part in value]
    else:
        parts = [part.strip() for part in str(value).split(",")]
    return tuple(part for part in parts if part)


def normalize_breakdown(value: object) -> tuple[BreakdownItem, ...]:
    """Keep mapping entries of a breakdown list as ``{item, calories}`` pairs."""
    if not isinstance(value, list | tuple):
        return ()
    return tuple(
        BreakdownItem(
            item=_to_text(entry.get("item")),
            calories=to_non_negative_int(entry.get("calories")),
        )
        for entry in value
        if isinstance(entry, Mapping)
    )


def to_non_negative_int(value: object) -> int:
    """Truncate toward zero and clamp into ``[0, MAX_STORED_INT]``.

    Anything non-numeric is 0.
    """
    number = _to_number(value)
    if number is None or number <= 0:
        return 0
    return min(int(number), MAX_STORED_INT)


def coerce_id(value: object) -> int | None:
    """Return a positive integer id, or ``None`` when the store should assign one."""
    number = _to_number(value)
    if number is None or number < 1 or number != int(number):
        return None
    if number > MAX_STORED_INT:
        return None
    return int(number)


def _to_optional_int(value: object) -> int | None:
    if value is None:
        return None
    return to_non_negative_int(value)


def _timestamp(value: object, now: int) -> int:
    return to_non_negative_int(value) or now


def _to_number(value: object) -> int | float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        number = value
    elif isinstance(value, str):
        try:
            number = float(value.strip() or 0)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _to_text(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _require_mapping(raw: object, kind: str) -> Mapping[str, object]:
    if not isinstance(raw, Mapping):
        raise ValidationError(f"Invalid {kind} payload: expected an object.")
    return raw


def now_ms() -> int:
    """Current wall-clock time in milliseconds."""
    return time.time_ns() // 1_000_000
