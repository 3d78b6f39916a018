"""Domain models for the food library."""

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class Food:
    """A reusable library item with calories per stated portion.

    ``name_lower`` and ``tags_lower`` are index keys derived from ``name`` and
    ``tags``; they are computed, never stored independently.
    """

    id: int | None
    name: str
    calories: int
    portion: str
    tags: tuple[str, ...]
    notes: str
    created_at: int
    updated_at: int

    @property
    def name_lower(self) -> str:
        return self.name.lower()

    @property
    def tags_lower(self) -> str:
        return ",".join(self.tags).lower()

    def with_id(self, food_id: int) -> "Food":
        """Return a copy carrying the store-assigned id."""
        return replace(self, id=food_id)

    def to_record(self) -> dict[str, object]:
        """Return the portable record shape used by snapshots and the API."""
        return {
            "id": self.id,
            "name": self.name,
            "nameLower": self.name_lower,
            "calories": self.calories,
            "portion": self.portion,
            "tags": list(self.tags),
            "tagsLower": self.tags_lower,
            "notes": self.notes,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
