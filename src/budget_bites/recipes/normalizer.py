# src/budget_bites/recipes/normalizer.py
from __future__ import annotations

"""
normalizer.py

Purpose:
    Convert a raw Spoonacular recipe payload (information endpoint, a
    complexSearch result or a findByIngredients hit) into a canonical Recipe.

Rules:
    - id falls back to `spoonacular_id` when `id` is absent
    - summary HTML is stripped to plain text
    - pricePerServing arrives in US cents; it is divided by 100 and rounded
      to 2 decimals HERE and nowhere else
    - bad values become None; this never raises

Already-canonical input passes through without conversion, so normalizing
twice cannot divide the price twice: Recipe values are returned as is, and
dicts produced by Recipe.to_dict() (they carry the "normalized" marker, as
does every cached raw_data blob) are only re-parsed.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from budget_bites.logging_utils import get_logger
from budget_bites.recipes.cleaning import strip_html_tags
from budget_bites.recipes.schema import NORMALIZED_MARKER, Recipe, to_float

logger = get_logger("normalizer")


def normalize_price(raw_price: Any) -> Optional[float]:
    """Minor units -> major units, 2 decimals. Invalid input -> None."""
    cents = to_float(raw_price)
    if cents is None:
        return None
    return round(cents / 100, 2)


def normalize_api_recipe(
    recipe_data: Any,
    *,
    log: Optional[logging.Logger] = None,
) -> Optional[Recipe]:
    if isinstance(recipe_data, Recipe):
        return recipe_data
    if not isinstance(recipe_data, Mapping):
        return None

    log = log or logger
    payload: Dict[str, Any] = dict(recipe_data)
    payload["id"] = payload.get("id") or payload.get("spoonacular_id")
    payload.pop("spoonacular_id", None)
    if payload.get(NORMALIZED_MARKER) is not True:
        payload["summary"] = strip_html_tags(payload.get("summary"))
        payload["pricePerServing"] = normalize_price(payload.get("pricePerServing"))

    try:
        return Recipe.from_dict(payload)
    except (TypeError, ValueError) as exc:
        log.warning(
            "Dropping unusable recipe payload: %s",
            exc,
            extra={
                "invoking_func": "normalize_api_recipe",
                "invoking_purpose": "Normalize raw Spoonacular payload",
                "next_step": "Return None to caller",
                "resolution": "Payload must carry id or spoonacular_id and JSON-shaped fields",
            },
        )
        return None
