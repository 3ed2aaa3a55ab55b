# src/budget_bites/recipes/service.py
from __future__ import annotations

"""
service.py

Purpose:
    The single object the route layer talks to. Wires the Spoonacular
    client, the Supabase cache and the search / detail / ranking / grocery
    components, and exposes:

      search_with_fallback, search_by_ingredients_with_fallback,
      get_detailed_recipes, build_grocery_list, sort_by_preferences,
      ensure_recipe_record, get_user_preferences

Usage:
    service = await build_recipe_service()
    try:
        recipes = await service.search_with_fallback(request_form)
    finally:
        await service.aclose()
"""

import logging
from typing import Any, List, Mapping, Optional, Sequence

from supabase import AsyncClient

from budget_bites.config import SpoonacularSettings, get_spoonacular_settings, get_supabase_client
from budget_bites.grocery.list_builder import GroceryList, build_grocery_list
from budget_bites.logging_utils import get_logger
from budget_bites.recipes.cost_enricher import CostEnricher
from budget_bites.recipes.detail_resolver import DetailResolver
from budget_bites.recipes.schema import Recipe
from budget_bites.recipes.search import RecipeSearchOrchestrator
from budget_bites.recipes.spoonacular import SpoonacularClient
from budget_bites.recommendation.preference_ranker import PreferencesLike, UserPreferences, sort_by_preferences
from budget_bites.recommendation.preference_store import PreferenceStore
from budget_bites.storage.recipe_store import RecipeCacheStore

logger = get_logger("service")


class RecipeService:
    def __init__(
        self,
        api: SpoonacularClient,
        supabase: AsyncClient,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.logger = log or logger
        self.api = api
        self.store = RecipeCacheStore(supabase, log=self.logger)
        self.preferences = PreferenceStore(supabase, log=self.logger)
        self.cost_enricher = CostEnricher(api, self.store, log=self.logger)
        self.resolver = DetailResolver(api, self.store, self.cost_enricher, log=self.logger)
        self.search = RecipeSearchOrchestrator(api, self.store, self.resolver, log=self.logger)

    async def aclose(self) -> None:
        await self.api.aclose()

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------
    async def search_with_fallback(self, raw_filters: Optional[Mapping[str, Any]]) -> List[Recipe]:
        return await self.search.search_with_fallback(raw_filters)

    async def search_by_ingredients_with_fallback(self, raw_filters: Optional[Mapping[str, Any]]) -> List[Recipe]:
        return await self.search.search_by_ingredients_with_fallback(raw_filters)

    # ------------------------------------------------------------------
    # Details / records
    # ------------------------------------------------------------------
    async def get_detailed_recipes(self, recipe_ids: Optional[Sequence[int]]) -> List[Recipe]:
        return await self.resolver.get_detailed_recipes(recipe_ids)

    async def ensure_recipe_record(self, recipe_id: Optional[int]) -> Optional[int]:
        """Internal recipe_id for a Spoonacular id, fetching + caching it first if needed."""
        if not recipe_id:
            return None

        record_id = await self.store.get_record_id(recipe_id)
        if record_id is not None:
            return record_id

        await self.resolver.fetch_recipe_from_api(recipe_id)
        return await self.store.get_record_id(recipe_id)

    # ------------------------------------------------------------------
    # Ranking / grocery list
    # ------------------------------------------------------------------
    async def get_user_preferences(self, user_id: Any) -> Optional[UserPreferences]:
        return await self.preferences.get_user_preferences(user_id)

    @staticmethod
    def sort_by_preferences(recipes: Optional[List[Recipe]], preferences: PreferencesLike) -> Optional[List[Recipe]]:
        return sort_by_preferences(recipes, preferences)

    @staticmethod
    def build_grocery_list(recipes: Optional[Sequence[Optional[Recipe]]]) -> GroceryList:
        return build_grocery_list(recipes)


async def build_recipe_service(
    settings: Optional[SpoonacularSettings] = None,
    supabase: Optional[AsyncClient] = None,
) -> RecipeService:
    """Wire a RecipeService from environment variables (see config.py)."""
    settings = settings or get_spoonacular_settings()
    supabase = supabase or await get_supabase_client()
    return RecipeService(SpoonacularClient(settings), supabase)
