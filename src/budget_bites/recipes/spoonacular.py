# src/budget_bites/recipes/spoonacular.py
from __future__ import annotations

"""
spoonacular.py

Purpose:
    Thin async client for the four Spoonacular endpoints the recipe core uses.

    Every method returns the decoded JSON body and raises RecipeApiError on
    any failure (timeout, connection error, 4xx/5xx, undecodable body). The
    callers in this package catch that error at the call site and degrade;
    nothing here retries.
"""

from typing import Any, Dict, List, Mapping, Optional

import httpx

from budget_bites.config import SpoonacularSettings
from budget_bites.logging_utils import get_logger
from budget_bites.recipes.exceptions import RecipeApiError

logger = get_logger("spoonacular")


class SpoonacularClient:
    def __init__(
        self,
        settings: SpoonacularSettings,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.settings = settings
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=settings.base_url,
            timeout=settings.timeout_seconds,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------
    async def get_recipe_information(self, recipe_id: int, *, include_nutrition: bool = True) -> Dict[str, Any]:
        return await self._get(
            f"/recipes/{recipe_id}/information",
            {"includeNutrition": _bool_param(include_nutrition)},
        )

    async def get_recipe_price_breakdown(self, recipe_id: int) -> Dict[str, Any]:
        return await self._get(f"/recipes/{recipe_id}/priceBreakdownWidget.json", {})

    async def search_recipes(self, params: Mapping[str, Any]) -> Dict[str, Any]:
        """complexSearch; body is {"results": [...], "totalResults": ...}."""
        return await self._get("/recipes/complexSearch", params)

    async def search_recipes_by_ingredients(self, params: Mapping[str, Any]) -> List[Dict[str, Any]]:
        """findByIngredients; body is a bare list of lightweight recipes."""
        return await self._get("/recipes/findByIngredients", params)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    async def _get(self, endpoint: str, params: Mapping[str, Any]) -> Any:
        query = {k: _bool_param(v) for k, v in params.items() if v is not None}
        query["apiKey"] = self.settings.api_key

        try:
            response = await self._client.get(endpoint, params=query)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            raise RecipeApiError(endpoint, exc.response.text[:200], status_code=exc.response.status_code) from exc
        except httpx.HTTPError as exc:
            raise RecipeApiError(endpoint, f"{type(exc).__name__}: {exc}") from exc
        except ValueError as exc:
            # Body was not JSON
            logger.debug(
                "Undecodable Spoonacular response for %s",
                endpoint,
                extra={
                    "invoking_func": "SpoonacularClient._get",
                    "invoking_purpose": "Decode Spoonacular JSON body",
                    "next_step": "Raise RecipeApiError to caller",
                    "resolution": "",
                },
            )
            raise RecipeApiError(endpoint, f"invalid JSON body: {exc}") from exc


def _bool_param(value: Any) -> Any:
    # Spoonacular expects lowercase booleans in query strings
    if isinstance(value, bool):
        return "true" if value else "false"
    return value
