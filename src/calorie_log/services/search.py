"""Token relevance ranking over the food library."""

from collections.abc import Sequence

from calorie_log.domain.foods import Food

HAYSTACK_HIT = 2
NAME_HIT = 3
# Token scores differ by at least 1, so the boost stays strictly below that.
RECENCY_BOOST_MAX = 0.5
RECENCY_HALF_LIFE_MS = 1_000_000_000_000


def rank_foods(foods: Sequence[Food], query: str | None, limit: int) -> list[Food]:
    """Return foods most relevant to ``query`` first, at most ``limit`` of them.

    ``foods`` must already be in store (recency) order; that order is kept for
    an empty query and among equal scores.
    """
    if limit <= 0:
        return []
    tokens = tokenize(query)
    if not tokens:
        return list(foods[:limit])

    scored: list[tuple[float, Food]] = []
    for food in foods:
        score = score_food(food, tokens)
        if score <= 0:
            continue
        scored.append((score + recency_boost(food.updated_at), food))
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return [food for _, food in scored[:limit]]


def tokenize(query: str | None) -> list[str]:
    """Lowercase and whitespace-split a query."""
    return (query or "").strip().lower().split()


def score_food(food: Food, tokens: Sequence[str]) -> int:
    """Sum per-token hits: 2 anywhere in name, tags or notes, 3 more in the name."""
    haystack = f"{food.name_lower} {food.tags_lower} {food.notes.lower()}"
    score = 0
    for token in tokens:
        if token in haystack:
            score += HAYSTACK_HIT
        if token in food.name_lower:
            score += NAME_HIT
    return score


def recency_boost(updated_at: int) -> float:
    """Small tie-breaker that grows with ``updated_at`` and stays below 0.5."""
    if updated_at <= 0:
        return 0.0
    return RECENCY_BOOST_MAX * updated_at / (updated_at + RECENCY_HALF_LIFE_MS)
