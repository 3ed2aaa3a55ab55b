# src/budget_bites/recipes/filters.py
from __future__ import annotations

"""
filters.py

Purpose:
    1. Turn a loosely typed request (form body / query string) into a
       validated SearchFilters / IngredientSearchFilters value, once.
    2. Apply those filters to Recipe values (cached or freshly fetched).

Intolerance matching is open-world: a recipe is only excluded when it
carries explicit contrary metadata (a false `<intolerance>Free` flag).
Recipes with no intolerance metadata pass. Spoonacular only exposes
glutenFree / dairyFree flags, so for other intolerances this filter is
advisory; the external search itself applies the intolerance server-side.
"""

from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from budget_bites.recipes.cleaning import normalize_diet, split_csv_list
from budget_bites.recipes.schema import (
    IngredientSearchFilters,
    Recipe,
    SearchFilters,
    to_float,
    to_int,
)

DEFAULT_NUMBER = 10
MAX_NUMBER = 100


# ----------------------------------------------------------------------
# Request parsing
# ----------------------------------------------------------------------
def _ordered(low: Any, high: Any) -> Tuple[Any, Any]:
    if low is not None and high is not None and low > high:
        return high, low
    return low, high


def _parse_number(value: Any) -> int:
    n = to_int(value)
    if not n:
        return DEFAULT_NUMBER
    return max(1, min(n, MAX_NUMBER))


def _positive_int(value: Any) -> Optional[int]:
    # 0 or negative means "no bound", like an empty form field
    n = to_int(value)
    return n if n is not None and n > 0 else None


def _parse_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        t = value.strip().lower()
        if t in {"true", "1", "yes", "on"}:
            return True
        if t in {"false", "0", "no", "off"}:
            return False
    return default


def _common_fields(raw: Mapping[str, Any]) -> Dict[str, Any]:
    query = raw.get("query")
    query = query.strip() if isinstance(query, str) else None

    min_calories, max_calories = _ordered(to_int(raw.get("minCalories")), to_int(raw.get("maxCalories")))
    min_price, max_price = _ordered(to_float(raw.get("minPrice")), to_float(raw.get("maxPrice")))

    return {
        "number": _parse_number(raw.get("number")),
        "query": query or None,
        "diet": normalize_diet(raw.get("diet")),
        "max_ready_time": _positive_int(raw.get("maxReadyTime")),
        "min_calories": min_calories,
        "max_calories": max_calories,
        "min_price": min_price,
        "max_price": max_price,
        "intolerances": split_csv_list(raw.get("intolerances")),
    }


def parse_search_filters(raw: Optional[Mapping[str, Any]]) -> SearchFilters:
    if isinstance(raw, SearchFilters):
        return raw
    return SearchFilters(**_common_fields(raw or {}))


def parse_ingredient_filters(raw: Optional[Mapping[str, Any]]) -> IngredientSearchFilters:
    if isinstance(raw, IngredientSearchFilters):
        return raw
    raw = raw or {}
    return IngredientSearchFilters(
        **_common_fields(raw),
        ingredients=split_csv_list(raw.get("ingredients")),
        ranking=to_int(raw.get("ranking")) or 1,
        ignore_pantry=_parse_bool(raw.get("ignorePantry"), True),
    )


# ----------------------------------------------------------------------
# Diet / intolerance rules
# ----------------------------------------------------------------------
_DIET_RULES: Dict[str, Callable[[Recipe], bool]] = {
    "vegetarian": lambda r: r.vegetarian is True,
    "vegan": lambda r: r.vegan is True,
    "gluten free": lambda r: r.gluten_free is True,
    "dairy free": lambda r: r.dairy_free is True,
    "low fodmap": lambda r: r.low_fodmap is True,
    "whole30": lambda r: r.whole30 is True or r.has_diet_label("whole30"),
    "paleo": lambda r: r.has_diet_label("paleolithic"),
    "primal": lambda r: r.has_diet_label("primal"),
    "ketogenic": lambda r: r.ketogenic is True,
}


def matches_diet(recipe: Recipe, diet: Optional[str]) -> bool:
    if not diet:
        return True
    if recipe.has_diet_label(diet):
        return True
    rule = _DIET_RULES.get(diet)
    return rule(recipe) if rule is not None else False


def passes_intolerance(recipe: Recipe, intolerance: str) -> bool:
    flag = recipe.flag("".join(intolerance.split()) + "Free")
    if flag is not None:
        return flag
    # An "<intolerance> free" diet label passes; so does missing metadata.
    # TODO: exclude unlabeled recipes once the product decides intolerance
    # filtering must be strict (see DESIGN.md, open questions).
    return True


def _within(value: Optional[float], low: Optional[float], high: Optional[float]) -> bool:
    if low is None and high is None:
        return True
    if value is None:
        return False
    if low is not None and value < low:
        return False
    if high is not None and value > high:
        return False
    return True


def recipe_matches(recipe: Recipe, filters: SearchFilters) -> bool:
    if not matches_diet(recipe, filters.diet):
        return False
    if not all(passes_intolerance(recipe, i) for i in filters.intolerances):
        return False
    if not _within(recipe.ready_in_minutes, None, filters.max_ready_time):
        return False
    if not _within(recipe.price_per_serving, filters.min_price, filters.max_price):
        return False
    if not _within(recipe.calories, filters.min_calories, filters.max_calories):
        return False
    return True


def filter_recipes(recipes: Iterable[Optional[Recipe]], filters: SearchFilters) -> List[Recipe]:
    """Order-preserving, idempotent constraint filter."""
    return [r for r in recipes or [] if r is not None and recipe_matches(r, filters)]
