"""Tests for record normalization."""

import pytest

from calorie_log.errors import ValidationError
from calorie_log.services.normalize import (
    coerce_id,
    normalize_food,
    normalize_log,
    normalize_tags,
    to_non_negative_int,
)

NOW = 1_700_000_000_000


def test_normalize_food_trims_and_derives_index_keys() -> None:
    food = normalize_food(
        {
            "name": "  Oat Milk Latte ",
            "calories": "120.9",
            "portion": " 1 cup ",
            "tags": "Coffee, , Dairy-Free ",
            "notes": None,
        },
        NOW,
    )

    assert food.id is None
    assert food.name == "Oat Milk Latte"
    assert food.name_lower == "oat milk latte"
    assert food.calories == 120
    assert food.portion == "1 cup"
    assert food.tags == ("Coffee", "Dairy-Free")
    assert food.tags_lower == "coffee,dairy-free"
    assert food.notes == ""
    assert food.created_at == NOW
    assert food.updated_at == NOW


def test_normalize_food_ignores_supplied_index_keys() -> None:
    food = normalize_food(
        {"name": "Bagel", "nameLower": "stale", "tagsLower": "stale"}, NOW
    )

    assert food.to_record()["nameLower"] == "bagel"
    assert food.to_record()["tagsLower"] == ""


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (12.9, 12),
        ("7", 7),
        (-5, 0),
        ("-3.2", 0),
        ("abc", 0),
        (None, 0),
        (True, 0),
        (float("nan"), 0),
        ("", 0),
        (1e20, 2**63 - 1),
        (10**30, 2**63 - 1),
        ("1e400", 0),
    ],
)
def test_to_non_negative_int(raw: object, expected: int) -> None:
    assert to_non_negative_int(raw) == expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (7, 7),
        ("12", 12),
        (3.0, 3),
        (0, None),
        (-1, None),
        ("x", None),
        (2.5, None),
        (2**63 - 1, 2**63 - 1),
        (2**63, None),
        (1e20, None),
        ("10000000000000000000", None),
    ],
)
def test_coerce_id(raw: object, expected: int | None) -> None:
    assert coerce_id(raw) == expected


def test_normalize_tags_accepts_sequences() -> None:
    assert normalize_tags([" a ", "", "b", 3]) == ("a", "b", "3")
    assert normalize_tags(None) == ()
    assert normalize_tags("") == ()


def test_created_at_is_preserved_and_updated_at_refreshed() -> None:
    food = normalize_food({"name": "Toast", "createdAt": 5, "updatedAt": 6}, NOW)

    assert food.created_at == 5
    assert food.updated_at == NOW


def test_keep_updated_at_preserves_incoming_timestamp() -> None:
    entry = normalize_log(
        {"date": "2024-03-01", "createdAt": 5, "updatedAt": 6},
        NOW,
        keep_updated_at=True,
    )

    assert entry.updated_at == 6


def test_normalize_log_defaults() -> None:
    entry = normalize_log(
        {
            "date": " 2024-03-01 ",
            "label": "   ",
            "calories": "300",
            "rangeLow": "250.7",
            "rangeHigh": None,
            "breakdown": [{"item": " rice ", "calories": "200"}, "bogus"],
            "confidence": "certain",
            "matchedFoodId": "abc",
        },
        NOW,
    )

    assert entry.date == "2024-03-01"
    assert entry.label == "Food"
    assert entry.calories == 300
    assert entry.range_low == 250
    assert entry.range_high is None
    assert [item.to_record() for item in entry.breakdown] == [
        {"item": "rice", "calories": 200}
    ]
    assert entry.confidence == "medium"
    assert entry.matched_food_id is None


def test_normalization_is_idempotent_except_updated_at() -> None:
    first = normalize_food(
        {"name": " Granola ", "calories": 210.5, "tags": "breakfast, oats"}, NOW
    )
    second = normalize_food(first.to_record(), NOW + 10)

    first_record = first.to_record()
    second_record = second.to_record()
    assert second_record.pop("updatedAt") == NOW + 10
    first_record.pop("updatedAt")
    assert second_record == first_record


def test_log_normalization_is_idempotent_except_updated_at() -> None:
    first = normalize_log(
        {
            "id": 3,
            "date": "2024-03-01",
            "label": "Salad",
            "calories": 300,
            "rangeLow": 250,
            "rangeHigh": 350,
            "breakdown": [{"item": "greens", "calories": 40}],
            "confidence": "low",
            "matchedFoodId": 9,
        },
        NOW,
    )
    second = normalize_log(first.to_record(), NOW + 10)

    first_record = first.to_record()
    second_record = second.to_record()
    first_record.pop("updatedAt")
    second_record.pop("updatedAt")
    assert second_record == first_record


@pytest.mark.parametrize("payload", [None, "food", 3, ["name"]])
def test_non_mapping_payload_is_rejected(payload: object) -> None:
    with pytest.raises(ValidationError):
        normalize_food(payload, NOW)  # type: ignore[arg-type]
    with pytest.raises(ValidationError):
        normalize_log(payload, NOW)  # type: ignore[arg-type]


def test_oversized_numbers_are_clamped_to_storable_range() -> None:
    entry = normalize_log(
        {
            "id": 10**20,
            "calories": 1e20,
            "rangeHigh": "1e30",
            "matchedFoodId": 2**64,
            "createdAt": 10**25,
        },
        NOW,
    )

    assert entry.id is None
    assert entry.calories == 2**63 - 1
    assert entry.range_high == 2**63 - 1
    assert entry.matched_food_id is None
    assert entry.created_at == 2**63 - 1
