"""
preference_ranker.py

Re-rank a recipe list by a user's configured preferences.

Sort keys (UserPreferences.sort_by):
  price / time  - ascending; recipes without a value sort last
  calories      - ascending; missing calories count as 0
  health        - descending healthScore; missing counts as 0
  popularity    - descending aggregateLikes; missing counts as 0
  relevance     - descending weighted score (default)

Relevance score:
  score = price_w    * (100 - price * 10)
        + time_w     * (100 - readyInMinutes)
        + calories_w * (calories / 10)
        + health_w   * healthScore

  A term contributes nothing when its field or its weight is falsy.

sort_order "desc" flips every comparison, including the keys that are
descending by default.
"""
from __future__ import annotations

import functools
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from budget_bites.recipes.schema import Recipe

SORT_KEYS = ("relevance", "price", "time", "calories", "health", "popularity")

DEFAULT_PRIORITY_FACTORS: Dict[str, float] = {"price": 1, "time": 1, "calories": 1, "health": 1}


@dataclass(frozen=True)
class UserPreferences:
    sort_by: str = "relevance"
    sort_order: str = "asc"
    priority_factors: Dict[str, float] = field(
        default_factory=lambda: dict(DEFAULT_PRIORITY_FACTORS), hash=False
    )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "UserPreferences":
        factors = data.get("priority_factors")
        return cls(
            sort_by=data.get("sort_by") or "relevance",
            sort_order=data.get("sort_order") or "asc",
            # A stored factor map replaces the defaults wholesale, even an empty one
            priority_factors=dict(factors) if isinstance(factors, Mapping) else dict(DEFAULT_PRIORITY_FACTORS),
        )


PreferencesLike = Union[UserPreferences, Mapping[str, Any], None]


def _compare(a: float, b: float) -> int:
    # inf vs inf compares equal instead of producing nan
    return (a > b) - (a < b)


class PreferenceRanker:
    def __init__(self, preferences: UserPreferences) -> None:
        self.preferences = preferences

    def relevance_score(self, recipe: Recipe) -> float:
        factors = self.preferences.priority_factors
        score = 0.0

        if recipe.price_per_serving and factors.get("price"):
            score += (100 - recipe.price_per_serving * 10) * factors["price"]
        if recipe.ready_in_minutes and factors.get("time"):
            score += (100 - recipe.ready_in_minutes) * factors["time"]
        calories = recipe.calories
        if calories is not None and factors.get("calories"):
            score += (calories / 10) * factors["calories"]
        if recipe.health_score and factors.get("health"):
            score += recipe.health_score * factors["health"]

        return score

    def compare(self, a: Recipe, b: Recipe) -> int:
        sort_by = self.preferences.sort_by

        if sort_by == "price":
            result = _compare(a.price_per_serving or math.inf, b.price_per_serving or math.inf)
        elif sort_by == "time":
            result = _compare(a.ready_in_minutes or math.inf, b.ready_in_minutes or math.inf)
        elif sort_by == "calories":
            result = _compare(a.calories or 0, b.calories or 0)
        elif sort_by == "health":
            result = _compare(b.health_score or 0, a.health_score or 0)
        elif sort_by == "popularity":
            result = _compare(b.aggregate_likes or 0, a.aggregate_likes or 0)
        else:
            result = _compare(self.relevance_score(b), self.relevance_score(a))

        return result if self.preferences.sort_order == "asc" else -result

    def sort(self, recipes: List[Recipe]) -> List[Recipe]:
        """Stable sort into a new list; the input list is left as is."""
        return sorted(recipes, key=functools.cmp_to_key(self.compare))


def sort_by_preferences(recipes: Optional[List[Recipe]], preferences: PreferencesLike) -> Optional[List[Recipe]]:
    if not recipes or not preferences:
        return recipes
    if not isinstance(preferences, UserPreferences):
        preferences = UserPreferences.from_mapping(preferences)
    return PreferenceRanker(preferences).sort(recipes)
