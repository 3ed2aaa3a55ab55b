# src/budget_bites/storage/recipe_store.py
from __future__ import annotations

"""
recipe_store.py

Purpose:
    Local cache of normalized recipes in the Supabase `recipes` table.

    Row layout (one row per Spoonacular id):
      recipe_id (internal pk), spoonacular_id (unique), title, description,
      servings, source_url, image_url, ready_in_minutes, price_per_serving,
      summary, raw_data (jsonb canonical Recipe), updated_at

    This class is the only code that reads or writes that table.

Failure semantics:
    Every Supabase error is caught and logged here and comes back as an
    empty/None result. Callers treat "cache unavailable" exactly like
    "cache empty"; nothing in this module raises to them.
"""

import json
import logging
from typing import Any, Dict, Iterable, List, Optional

from supabase import AsyncClient

from budget_bites.logging_utils import get_logger
from budget_bites.recipes.schema import Recipe, SearchFilters, StoredRecipeRow, to_int

MODULE_PURPOSE = "Supabase-backed read-through cache of normalized recipes"

RECIPES_TABLE = "recipes"

logger = get_logger("recipe_store")


class RecipeCacheStore:
    def __init__(
        self,
        client: AsyncClient,
        *,
        table: str = RECIPES_TABLE,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.client = client
        self.table = table
        self.logger = log or logger

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    async def upsert(self, recipe: Optional[Recipe]) -> Optional[int]:
        """Insert-or-update by spoonacular_id. Returns the internal recipe_id when known."""
        if recipe is None or not recipe.id:
            return None

        try:
            payload = StoredRecipeRow.from_recipe(recipe).to_payload()
            res = await (
                self.client.table(self.table)
                .upsert(payload, on_conflict="spoonacular_id")
                .execute()
            )
        except Exception as exc:  # noqa: BLE001
            self.logger.error(
                "Error saving recipe %s to cache: %s",
                recipe.id,
                exc,
                extra={
                    "invoking_func": "RecipeCacheStore.upsert",
                    "invoking_purpose": MODULE_PURPOSE,
                    "next_step": "Continue without persisting this recipe",
                    "resolution": "Check Supabase connectivity / recipes table schema",
                },
            )
            return None

        rows = res.data or []
        return to_int(rows[0].get("recipe_id")) if rows else None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def find_by_ids(self, ids: Iterable[int]) -> Dict[int, Recipe]:
        id_list = [i for i in dict.fromkeys(ids or []) if i]
        if not id_list:
            return {}

        try:
            res = await (
                self.client.table(self.table)
                .select("spoonacular_id, raw_data")
                .in_("spoonacular_id", id_list)
                .execute()
            )
        except Exception as exc:  # noqa: BLE001
            self.logger.error(
                "Error loading cached recipes: %s",
                exc,
                extra={
                    "invoking_func": "RecipeCacheStore.find_by_ids",
                    "invoking_purpose": MODULE_PURPOSE,
                    "next_step": "Treat every id as a cache miss",
                    "resolution": "Check Supabase connectivity",
                },
            )
            return {}

        out: Dict[int, Recipe] = {}
        for row in res.data or []:
            recipe = self._row_to_recipe(row)
            if recipe is not None:
                out[recipe.id] = recipe
        return out

    async def search_by_filters(self, filters: SearchFilters, limit: int) -> List[Recipe]:
        """
        Newest-first cached recipes matching the denormalized columns only.
        Query text, diet, intolerances and calories are left to the filter engine.
        """
        if limit <= 0:
            return []

        try:
            q = self.client.table(self.table).select("spoonacular_id, raw_data")
            if filters.max_ready_time is not None:
                q = q.lte("ready_in_minutes", filters.max_ready_time)
            if filters.min_price is not None:
                q = q.gte("price_per_serving", filters.min_price)
            if filters.max_price is not None:
                q = q.lte("price_per_serving", filters.max_price)
            res = await q.order("updated_at", desc=True).limit(limit).execute()
        except Exception as exc:  # noqa: BLE001
            self.logger.error(
                "Error searching cached recipes: %s",
                exc,
                extra={
                    "invoking_func": "RecipeCacheStore.search_by_filters",
                    "invoking_purpose": MODULE_PURPOSE,
                    "next_step": "Return no local results; caller tops up from API",
                    "resolution": "Check Supabase connectivity",
                },
            )
            return []

        out: List[Recipe] = []
        for row in res.data or []:
            recipe = self._row_to_recipe(row)
            if recipe is not None:
                out.append(recipe)
        return out

    async def get_record_id(self, external_id: Optional[int]) -> Optional[int]:
        if not external_id:
            return None

        try:
            res = await (
                self.client.table(self.table)
                .select("recipe_id")
                .eq("spoonacular_id", external_id)
                .limit(1)
                .execute()
            )
        except Exception as exc:  # noqa: BLE001
            self.logger.error(
                "Error looking up record id for recipe %s: %s",
                external_id,
                exc,
                extra={
                    "invoking_func": "RecipeCacheStore.get_record_id",
                    "invoking_purpose": MODULE_PURPOSE,
                    "next_step": "Return None",
                    "resolution": "Check Supabase connectivity",
                },
            )
            return None

        rows = res.data or []
        return to_int(rows[0].get("recipe_id")) if rows else None

    # ------------------------------------------------------------------
    # Row parsing
    # ------------------------------------------------------------------
    def _row_to_recipe(self, row: Dict[str, Any]) -> Optional[Recipe]:
        raw = row.get("raw_data")
        try:
            if isinstance(raw, (str, bytes)):
                raw = json.loads(raw)
            if not isinstance(raw, dict):
                raise ValueError(f"raw_data is {type(raw).__name__}, expected object")
            data = dict(raw)
            data["id"] = data.get("id") or row.get("spoonacular_id")
            return Recipe.from_dict(data)
        except (ValueError, TypeError) as exc:
            # json.JSONDecodeError is a ValueError
            self.logger.warning(
                "Skipping cached recipe %s with malformed raw_data: %s",
                row.get("spoonacular_id"),
                exc,
                extra={
                    "invoking_func": "RecipeCacheStore._row_to_recipe",
                    "invoking_purpose": MODULE_PURPOSE,
                    "next_step": "Skip row; id resolves as a cache miss",
                    "resolution": "Row is rewritten on next fetch of this recipe",
                },
            )
            return None
