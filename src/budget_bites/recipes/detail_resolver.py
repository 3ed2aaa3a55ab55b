# src/budget_bites/recipes/detail_resolver.py
from __future__ import annotations

"""
detail_resolver.py

Purpose:
    Given an ordered list of Spoonacular ids, return fully detailed,
    cost-enriched recipes in that same order.

Flow:
    1. batch lookup in the Supabase cache
    2. fetch cache misses from Spoonacular concurrently (normalize + persist)
    3. merge fetched recipes into the hit map
    4. re-project in the caller's order, dropping ids nobody could resolve
    5. run cost enrichment concurrently for every resolved recipe
    6. drop empty results

    One id failing (404, timeout, bad payload) only removes that id. Fan-out
    uses asyncio.gather(return_exceptions=True) so a failing task never
    cancels its siblings.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Sequence

from budget_bites.logging_utils import get_logger
from budget_bites.recipes.cost_enricher import CostEnricher
from budget_bites.recipes.normalizer import normalize_api_recipe
from budget_bites.recipes.schema import Recipe
from budget_bites.recipes.spoonacular import SpoonacularClient
from budget_bites.storage.recipe_store import RecipeCacheStore

MODULE_PURPOSE = "Resolve ordered recipe ids to detailed, cost-enriched recipes"

logger = get_logger("detail_resolver")


def is_detailed(recipe: Recipe) -> bool:
    # Search hits are cached too but carry no ingredient list
    return bool(recipe.extended_ingredients)


class DetailResolver:
    def __init__(
        self,
        api: SpoonacularClient,
        store: RecipeCacheStore,
        cost_enricher: CostEnricher,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.api = api
        self.store = store
        self.cost_enricher = cost_enricher
        self.logger = log or logger

    async def fetch_recipe_from_api(self, recipe_id: int) -> Optional[Recipe]:
        """Fetch one recipe with nutrition, normalize and persist it. Failures -> None."""
        try:
            payload = await self.api.get_recipe_information(recipe_id, include_nutrition=True)
        except Exception as exc:  # noqa: BLE001
            self.logger.warning(
                "Error fetching recipe %s: %s",
                recipe_id,
                exc,
                extra={
                    "invoking_func": "DetailResolver.fetch_recipe_from_api",
                    "invoking_purpose": MODULE_PURPOSE,
                    "next_step": "Omit this id from the result",
                    "resolution": "Transient API failure or unknown id",
                },
            )
            return None

        recipe = normalize_api_recipe(payload, log=self.logger)
        if recipe is not None:
            await self.store.upsert(recipe)
        return recipe

    async def get_detailed_recipes(self, recipe_ids: Optional[Sequence[int]]) -> List[Recipe]:
        if not recipe_ids:
            return []
        ids = list(recipe_ids)

        cached = await self.store.find_by_ids(ids)
        resolved: Dict[int, Recipe] = {rid: r for rid, r in cached.items() if is_detailed(r)}

        missing = [rid for rid in dict.fromkeys(ids) if rid not in resolved]
        if missing:
            fetched = await asyncio.gather(
                *(self.fetch_recipe_from_api(rid) for rid in missing),
                return_exceptions=True,
            )
            for rid, result in zip(missing, fetched):
                if isinstance(result, BaseException):
                    self._log_task_failure("fetch", rid, result)
                    continue
                if result is not None:
                    resolved[result.id] = result
            for rid in missing:
                if rid not in resolved and rid in cached:
                    # Lightweight cached copy beats dropping the id
                    resolved[rid] = cached[rid]

        ordered = [resolved[rid] for rid in ids if rid in resolved]
        if not ordered:
            return []

        enriched = await asyncio.gather(
            *(self.cost_enricher.ensure_recipe_has_cost_data(r) for r in ordered),
            return_exceptions=True,
        )
        out: List[Recipe] = []
        for original, result in zip(ordered, enriched):
            if isinstance(result, BaseException):
                self._log_task_failure("cost enrichment", original.id, result)
                out.append(original)
            elif result is not None:
                out.append(result)
        return out

    def _log_task_failure(self, stage: str, recipe_id: int, exc: BaseException) -> None:
        self.logger.error(
            "Unexpected %s failure for recipe %s: %r",
            stage,
            recipe_id,
            exc,
            extra={
                "invoking_func": "DetailResolver.get_detailed_recipes",
                "invoking_purpose": MODULE_PURPOSE,
                "next_step": "Continue with the remaining recipes",
                "resolution": "",
            },
        )

