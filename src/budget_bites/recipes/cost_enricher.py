# src/budget_bites/recipes/cost_enricher.py
from __future__ import annotations

"""
cost_enricher.py

Purpose:
    Make sure a recipe carries per-ingredient estimated cost.

    If any ingredient already has a numeric estimatedCost.value the recipe is
    returned as is (no external call). Otherwise the Spoonacular price
    breakdown is fetched, merged into a NEW Recipe value and persisted.

    Enrichment never fails the caller: on any fetch error the recipe comes
    back unmodified and the failure is logged.
"""

import logging
from dataclasses import replace
from typing import Any, Dict, Mapping, Optional, TYPE_CHECKING

from budget_bites.logging_utils import get_logger
from budget_bites.recipes.cleaning import lookup_key
from budget_bites.recipes.schema import EstimatedCost, Recipe, to_float

if TYPE_CHECKING:
    from budget_bites.recipes.spoonacular import SpoonacularClient
    from budget_bites.storage.recipe_store import RecipeCacheStore

MODULE_PURPOSE = "Attach per-ingredient cost from Spoonacular price breakdowns"

# Spoonacular reports breakdown prices in cents
COST_UNIT_LABEL = "US Cents"

logger = get_logger("cost_enricher")


def recipe_has_ingredient_cost(recipe: Optional[Recipe]) -> bool:
    if recipe is None:
        return False
    return any(
        i.estimated_cost is not None and i.estimated_cost.has_numeric_value()
        for i in recipe.extended_ingredients
    )


def _price_map(breakdown: Mapping[str, Any]) -> Dict[str, Dict[str, Any]]:
    out: Dict[str, Dict[str, Any]] = {}
    for item in breakdown.get("ingredients") or []:
        if not isinstance(item, Mapping):
            continue
        key = lookup_key(item.get("name"))
        if not key:
            continue
        price = to_float(item.get("price"))
        if price is None:
            continue
        out[key] = {"price": price, "amount": item.get("amount"), "image": item.get("image")}
    return out


def apply_price_breakdown(recipe: Recipe, breakdown: Optional[Mapping[str, Any]]) -> Recipe:
    """Pure merge of a price breakdown into a recipe; returns a new Recipe."""
    if recipe is None or not breakdown:
        return recipe

    prices = _price_map(breakdown)
    ingredients = []
    for ingredient in recipe.extended_ingredients:
        hit = prices.get(ingredient.lookup_key)
        if hit is None:
            ingredients.append(ingredient)
            continue
        ingredients.append(
            replace(
                ingredient,
                estimated_cost=EstimatedCost(
                    value=hit["price"],
                    unit=COST_UNIT_LABEL,
                    amount=hit["amount"],
                    image=hit["image"],
                ),
            )
        )

    changes: Dict[str, Any] = {
        "extended_ingredients": tuple(ingredients),
        "price_breakdown": dict(breakdown),
    }
    total_cost = breakdown.get("totalCost")
    if isinstance(total_cost, (int, float)) and not isinstance(total_cost, bool):
        changes["total_ingredient_cost"] = float(total_cost)
    per_serving = breakdown.get("totalCostPerServing")
    if isinstance(per_serving, (int, float)) and not isinstance(per_serving, bool):
        changes["total_cost_per_serving"] = float(per_serving)

    return replace(recipe, **changes)


class CostEnricher:
    def __init__(
        self,
        api: "SpoonacularClient",
        store: "RecipeCacheStore",
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.api = api
        self.store = store
        self.logger = log or logger

    async def ensure_recipe_has_cost_data(self, recipe: Optional[Recipe]) -> Optional[Recipe]:
        if recipe is None or recipe_has_ingredient_cost(recipe):
            return recipe

        try:
            breakdown = await self.api.get_recipe_price_breakdown(recipe.id)
        except Exception as exc:  # noqa: BLE001
            self.logger.warning(
                "Price breakdown fetch failed for recipe %s: %s",
                recipe.id,
                exc,
                extra={
                    "invoking_func": "CostEnricher.ensure_recipe_has_cost_data",
                    "invoking_purpose": MODULE_PURPOSE,
                    "next_step": "Return recipe without cost data",
                    "resolution": "Transient API failure; cost shows as unknown",
                },
            )
            return recipe

        if not isinstance(breakdown, Mapping) or not breakdown:
            return recipe

        enriched = apply_price_breakdown(recipe, breakdown)
        await self.store.upsert(enriched)
        return enriched
