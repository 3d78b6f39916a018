"""Services for managing the food library."""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from typing import Protocol

from calorie_log.domain.estimate import Candidate
from calorie_log.domain.foods import Food
from calorie_log.services.normalize import coerce_id, normalize_food, now_ms
from calorie_log.services.search import rank_foods

DEFAULT_SEARCH_LIMIT = 8


class FoodRepository(Protocol):
    """Persistence interface for the food library."""

    def put_food(self, food: Food) -> Food:
        """Insert a food, or fully replace the one with the same id."""

    def get_food(self, food_id: int) -> Food | None:
        """Return a food by id, if present."""

    def delete_food(self, food_id: int) -> None:
        """Delete a food by id; absent ids are ignored."""

    def list_foods(self) -> list[Food]:
        """Return every food, most recently updated first."""


@dataclass
class LibraryService:
    """Application service for library operations."""

    repository: FoodRepository
    clock: Callable[[], int] = now_ms

    def upsert_food(self, payload: Mapping[str, object]) -> Food:
        """Normalize and store a food, replacing any record with the same id."""
        food = normalize_food(payload, self.clock())
        if food.id is not None and not payload.get("createdAt"):
            existing = self.repository.get_food(food.id)
            if existing is not None:
                food = replace(food, created_at=existing.created_at)
        return self.repository.put_food(food)

    def delete_food(self, food_id: object) -> None:
        """Delete a food; unknown ids are a no-op."""
        resolved = coerce_id(food_id)
        if resolved is None:
            return
        self.repository.delete_food(resolved)

    def get_food(self, food_id: object) -> Food | None:
        """Return a food by id, if present."""
        resolved = coerce_id(food_id)
        if resolved is None:
            return None
        return self.repository.get_food(resolved)

    def get_all_foods(self) -> list[Food]:
        """Return the whole library in recency order."""
        return self.repository.list_foods()

    def search(
        self, query: str | None, limit: int = DEFAULT_SEARCH_LIMIT
    ) -> list[Food]:
        """Rank the library against a query, falling back to recency when empty."""
        return rank_foods(self.repository.list_foods(), query, limit)

    def candidates(
        self, query: str | None, limit: int = DEFAULT_SEARCH_LIMIT
    ) -> list[Candidate]:
        """Return the best matching foods projected for the estimator."""
        return [_to_candidate(food) for food in self.search(query, limit)]


def _to_candidate(food: Food) -> Candidate:
    return Candidate(
        id=food.id or 0,
        name=food.name,
        calories=food.calories,
        portion=food.portion,
        tags=list(food.tags),
        notes=food.notes,
    )
