# src/budget_bites/recipes/search.py
from __future__ import annotations

"""
search.py

Purpose:
    Local-first recipe search with an external top-up for the shortfall.

    Two entry points with the same shape:
      - search_with_fallback(raw)                 text / filter search
      - search_by_ingredients_with_fallback(raw)  "what can I cook with ..."

    Steps:
      1. parse the raw request into filters
      2. load up to min(number * 3, 90) cached recipes and filter them
      3. seed results + seen ids (dedupe by id, first seen wins)
      4. only if still short: ask Spoonacular for about twice the shortfall,
         normalize + persist each hit, resolve details + cost, filter again,
         append unseen matches
      5. truncate to `number`

    Spoonacular is never consulted for the whole request once the cache
    can satisfy it. Fewer results than requested is a normal outcome.
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set

from budget_bites.logging_utils import get_logger
from budget_bites.recipes.detail_resolver import DetailResolver, is_detailed
from budget_bites.recipes.filters import (
    MAX_NUMBER,
    filter_recipes,
    parse_ingredient_filters,
    parse_search_filters,
)
from budget_bites.recipes.normalizer import normalize_api_recipe
from budget_bites.recipes.schema import IngredientSearchFilters, Recipe, SearchFilters
from budget_bites.recipes.spoonacular import SpoonacularClient
from budget_bites.storage.recipe_store import RecipeCacheStore

MODULE_PURPOSE = "Local-first recipe search with external top-up for the shortfall"

# Local over-fetch: filtering in Python discards part of what the cache returns
LOCAL_FETCH_MULTIPLIER = 3
LOCAL_FETCH_CAP = 90

# Minimum top-up request size per endpoint
TEXT_SEARCH_MIN_REQUEST = 5
INGREDIENT_SEARCH_MIN_REQUEST = 10

logger = get_logger("search")


def local_fetch_limit(number: int) -> int:
    return min(number * LOCAL_FETCH_MULTIPLIER, LOCAL_FETCH_CAP)


def top_up_size(needed: int, floor: int) -> int:
    return min(max(needed * 2, needed, floor), MAX_NUMBER)


def _unique_ids(ids: Iterable[Optional[int]]) -> List[int]:
    return [i for i in dict.fromkeys(ids) if i]


class _ResultAccumulator:
    """Ordered, id-deduplicated result list."""

    def __init__(self) -> None:
        self.items: List[Recipe] = []
        self.seen: Set[int] = set()

    def extend(self, recipes: Iterable[Recipe]) -> None:
        for recipe in recipes:
            if recipe.id in self.seen:
                continue
            self.seen.add(recipe.id)
            self.items.append(recipe)

    def __len__(self) -> int:
        return len(self.items)


class RecipeSearchOrchestrator:
    def __init__(
        self,
        api: SpoonacularClient,
        store: RecipeCacheStore,
        resolver: DetailResolver,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.api = api
        self.store = store
        self.resolver = resolver
        self.logger = log or logger

    # ------------------------------------------------------------------
    # Public APIs
    # ------------------------------------------------------------------
    async def search_with_fallback(self, raw_filters: Optional[Mapping[str, Any]]) -> List[Recipe]:
        filters = parse_search_filters(raw_filters)
        results = await self._local_matches(filters)

        if len(results) < filters.number:
            needed = filters.number - len(results)
            params = build_search_params(filters, top_up_size(needed, TEXT_SEARCH_MIN_REQUEST))
            try:
                body = await self.api.search_recipes(params)
            except Exception as exc:  # noqa: BLE001
                self._log_top_up_failure("search_with_fallback", exc, len(results))
                body = None

            hits: List[Any] = []
            if isinstance(body, Mapping):
                hits = body.get("results") or []
            ids = await self._persist_hits(hits)
            detailed = await self.resolver.get_detailed_recipes(ids)
            results.extend(filter_recipes(detailed, filters))

        self._log_done("search_with_fallback", filters, len(results))
        return results.items[: filters.number]

    async def search_by_ingredients_with_fallback(
        self, raw_filters: Optional[Mapping[str, Any]]
    ) -> List[Recipe]:
        filters = parse_ingredient_filters(raw_filters)
        if not filters.ingredients:
            return []

        results = await self._local_matches(filters)

        if len(results) < filters.number:
            needed = filters.number - len(results)
            params = build_ingredient_params(filters, top_up_size(needed, INGREDIENT_SEARCH_MIN_REQUEST))
            try:
                hits = await self.api.search_recipes_by_ingredients(params)
            except Exception as exc:  # noqa: BLE001
                self._log_top_up_failure("search_by_ingredients_with_fallback", exc, len(results))
                hits = []

            ids = await self._persist_hits(hits if isinstance(hits, list) else [])
            fresh_ids = [i for i in ids if i not in results.seen]
            detailed = await self.resolver.get_detailed_recipes(fresh_ids)
            results.extend(filter_recipes(detailed, filters))

        self._log_done("search_by_ingredients_with_fallback", filters, len(results))
        return results.items[: filters.number]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    async def _local_matches(self, filters: SearchFilters) -> _ResultAccumulator:
        cached = await self.store.search_by_filters(filters, local_fetch_limit(filters.number))
        results = _ResultAccumulator()
        results.extend(filter_recipes(cached, filters))
        return results

    async def _persist_hits(self, hits: Sequence[Any]) -> List[int]:
        """
        Normalize + persist each search hit; return their ids in hit order.
        Hits whose id is already cached with full details are not rewritten,
        so a lightweight search payload never replaces a detail record.
        """
        recipes: List[Recipe] = []
        for hit in hits:
            recipe = normalize_api_recipe(hit, log=self.logger)
            if recipe is not None:
                recipes.append(recipe)
        if not recipes:
            return []

        cached = await self.store.find_by_ids([r.id for r in recipes])
        to_write = [r for r in recipes if r.id not in cached or not is_detailed(cached[r.id])]
        written = await asyncio.gather(*(self.store.upsert(r) for r in to_write), return_exceptions=True)
        for recipe, result in zip(to_write, written):
            if isinstance(result, BaseException):
                self.logger.error(
                    "Unexpected failure caching search hit %s: %r",
                    recipe.id,
                    result,
                    extra={
                        "invoking_func": "RecipeSearchOrchestrator._persist_hits",
                        "invoking_purpose": MODULE_PURPOSE,
                        "next_step": "Continue; the id still resolves through the detail fetch",
                        "resolution": "",
                    },
                )
        return _unique_ids(r.id for r in recipes)

    def _log_top_up_failure(self, func: str, exc: Exception, have: int) -> None:
        self.logger.warning(
            "External top-up search failed: %s",
            exc,
            extra={
                "invoking_func": f"RecipeSearchOrchestrator.{func}",
                "invoking_purpose": MODULE_PURPOSE,
                "next_step": f"Return {have} local result(s)",
                "resolution": "Transient API failure; results may be short",
            },
        )

    def _log_done(self, func: str, filters: SearchFilters, have: int) -> None:
        self.logger.debug(
            "Search produced %d of %d requested recipes",
            min(have, filters.number),
            filters.number,
            extra={
                "invoking_func": f"RecipeSearchOrchestrator.{func}",
                "invoking_purpose": MODULE_PURPOSE,
                "next_step": "Return results to caller",
                "resolution": "",
            },
        )


# ----------------------------------------------------------------------
# Spoonacular request params
# ----------------------------------------------------------------------
def build_search_params(filters: SearchFilters, number: int) -> Dict[str, Any]:
    params: Dict[str, Any] = {
        "number": number,
        "addRecipeInformation": True,
        "addRecipeNutrition": True,
        "addRecipePrice": True,
        "fillIngredients": True,
    }
    if filters.query:
        params["query"] = filters.query
    if filters.diet:
        params["diet"] = filters.diet
    if filters.intolerances:
        params["intolerances"] = ",".join(filters.intolerances)
    if filters.max_ready_time is not None:
        params["maxReadyTime"] = filters.max_ready_time
    if filters.min_calories is not None:
        params["minCalories"] = filters.min_calories
    if filters.max_calories is not None:
        params["maxCalories"] = filters.max_calories
    return params


def build_ingredient_params(filters: IngredientSearchFilters, number: int) -> Dict[str, Any]:
    return {
        "ingredients": ",".join(filters.ingredients),
        "number": number,
        "ranking": filters.ranking,
        "ignorePantry": filters.ignore_pantry,
    }
