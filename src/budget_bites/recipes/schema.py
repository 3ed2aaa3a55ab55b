# src/budget_bites/recipes/schema.py
from __future__ import annotations

"""
schema.py

Purpose:
    Shared dataclasses for the recipe aggregation core.

    These are the "internal contracts" between:
      - the Spoonacular boundary (normalizer, cost enricher),
      - the Supabase cache (recipe_store),
      - search / filtering / ranking / grocery aggregation.

    Nothing in this module talks to Supabase or the network.

    Recipe values are immutable. Anything that "changes" a recipe (cost
    enrichment) builds a new value with dataclasses.replace(), so the same
    Recipe can be shared by concurrent branches without aliasing surprises.

Serialization:
    to_dict() / from_dict() use the canonical camelCase shape that is stored
    in recipes.raw_data. from_dict() performs NO unit conversion: prices in
    that shape are already in major currency units. Conversion from the
    API's minor units happens only in normalizer.normalize_api_recipe().
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple


# ----------------------------------------------------------------------
# Loose value coercion (payloads are duck-typed JSON)
# ----------------------------------------------------------------------
def to_float(value: Any) -> Optional[float]:
    """Numeric value as float; None for bools, NaN, and anything unparseable."""
    if value is None or isinstance(value, bool):
        return None
    try:
        out = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(out):
        return None
    return out


def to_int(value: Any) -> Optional[int]:
    f = to_float(value)
    if f is None or math.isinf(f):
        return None
    return int(f)


def _to_bool(value: Any) -> Optional[bool]:
    return value if isinstance(value, bool) else None


def _to_str(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


def _to_list(value: Any) -> Tuple[Any, ...]:
    # Strings and scalars are not item lists
    return tuple(value) if isinstance(value, (list, tuple)) else ()


@dataclass(frozen=True)
class EstimatedCost:
    """Cost of one ingredient line; `value` is in minor units (US cents)."""

    value: Optional[float]
    unit: Optional[str] = None
    amount: Any = None
    image: Optional[str] = None

    def has_numeric_value(self) -> bool:
        return self.value is not None

    @classmethod
    def from_dict(cls, data: Any) -> Optional["EstimatedCost"]:
        if not isinstance(data, Mapping):
            return None
        return cls(
            value=to_float(data.get("value")),
            unit=data.get("unit"),
            amount=data.get("amount"),
            image=data.get("image"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "unit": self.unit, "amount": self.amount, "image": self.image}


@dataclass(frozen=True)
class Ingredient:
    id: Optional[int] = None
    name: str = ""
    original: str = ""
    amount: float = 0.0            # summed across recipes without unit conversion
    unit: str = ""
    aisle: str = "Unknown"         # store category
    image: Optional[str] = None
    estimated_cost: Optional[EstimatedCost] = None
    extra: Dict[str, Any] = field(default_factory=dict, hash=False)

    _KNOWN_KEYS = ("id", "name", "original", "amount", "unit", "aisle", "image", "estimatedCost")

    @property
    def lookup_key(self) -> str:
        """Lowercased/trimmed name, or original text when the name is empty."""
        return (self.name or self.original or "").strip().lower()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Ingredient":
        return cls(
            id=to_int(data.get("id")),
            name=_to_str(data.get("name")),
            original=_to_str(data.get("original")),
            amount=to_float(data.get("amount")) or 0.0,
            unit=_to_str(data.get("unit")),
            aisle=_to_str(data.get("aisle")) or "Unknown",
            image=data.get("image"),
            estimated_cost=EstimatedCost.from_dict(data.get("estimatedCost")),
            extra={k: v for k, v in data.items() if k not in cls._KNOWN_KEYS},
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = dict(self.extra)
        out.update(
            {
                "id": self.id,
                "name": self.name,
                "original": self.original,
                "amount": self.amount,
                "unit": self.unit,
                "aisle": self.aisle,
                "image": self.image,
            }
        )
        if self.estimated_cost is not None:
            out["estimatedCost"] = self.estimated_cost.to_dict()
        return out


@dataclass(frozen=True)
class Nutrient:
    name: str
    amount: Optional[float]
    unit: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Nutrient":
        return cls(
            name=_to_str(data.get("name")),
            amount=to_float(data.get("amount")),
            unit=data.get("unit"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "amount": self.amount, "unit": self.unit}


# camelCase payload flag -> Recipe attribute
_FLAG_FIELDS: Dict[str, str] = {
    "vegetarian": "vegetarian",
    "vegan": "vegan",
    "glutenFree": "gluten_free",
    "dairyFree": "dairy_free",
    "lowFodmap": "low_fodmap",
    "whole30": "whole30",
    "ketogenic": "ketogenic",
}

# Set on every canonical dict; prices in such a dict are already major units
NORMALIZED_MARKER = "normalized"

_RECIPE_KNOWN_KEYS = frozenset(
    {
        NORMALIZED_MARKER,
        "id",
        "title",
        "summary",
        "pricePerServing",
        "readyInMinutes",
        "servings",
        "extendedIngredients",
        "diets",
        "healthScore",
        "aggregateLikes",
        "image",
        "sourceUrl",
        "priceBreakdown",
        "totalIngredientCost",
        "totalCostPerServing",
        *_FLAG_FIELDS.keys(),
    }
)


@dataclass(frozen=True)
class Recipe:
    """Canonical in-memory recipe. `id` is the Spoonacular (external) id."""

    id: int
    title: str = ""
    summary: str = ""
    price_per_serving: Optional[float] = None   # major currency units
    ready_in_minutes: Optional[int] = None
    servings: Optional[int] = None
    extended_ingredients: Tuple[Ingredient, ...] = ()
    nutrients: Tuple[Nutrient, ...] = ()
    diets: Tuple[str, ...] = ()

    vegetarian: Optional[bool] = None
    vegan: Optional[bool] = None
    gluten_free: Optional[bool] = None
    dairy_free: Optional[bool] = None
    low_fodmap: Optional[bool] = None
    whole30: Optional[bool] = None
    ketogenic: Optional[bool] = None

    health_score: Optional[float] = None
    aggregate_likes: Optional[int] = None
    image: Optional[str] = None
    source_url: Optional[str] = None

    # Attached by the cost enricher
    price_breakdown: Optional[Dict[str, Any]] = field(default=None, hash=False)
    total_ingredient_cost: Optional[float] = None
    total_cost_per_serving: Optional[float] = None

    # Every other payload field, kept so raw_data round-trips
    extra: Dict[str, Any] = field(default_factory=dict, hash=False)

    @property
    def calories(self) -> Optional[float]:
        for n in self.nutrients:
            if n.name == "Calories":
                return n.amount
        return None

    def flag(self, api_name: str) -> Optional[bool]:
        """Boolean metadata by payload name, e.g. "glutenFree" or "peanutFree"."""
        attr = _FLAG_FIELDS.get(api_name)
        if attr is not None:
            return getattr(self, attr)
        return _to_bool(self.extra.get(api_name))

    def has_diet_label(self, label: str) -> bool:
        return label in {d.lower() for d in self.diets}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Recipe":
        """Build from the canonical camelCase shape; raises ValueError without an id."""
        recipe_id = to_int(data.get("id"))
        if recipe_id is None:
            raise ValueError("recipe payload has no usable id")

        extra = {k: v for k, v in data.items() if k not in _RECIPE_KNOWN_KEYS}

        nutrients: Tuple[Nutrient, ...] = ()
        nutrition = data.get("nutrition")
        if isinstance(nutrition, Mapping):
            nutrients = tuple(
                Nutrient.from_dict(n) for n in _to_list(nutrition.get("nutrients")) if isinstance(n, Mapping)
            )
            rest = {k: v for k, v in nutrition.items() if k != "nutrients"}
            if rest:
                extra["nutrition"] = rest
            else:
                extra.pop("nutrition", None)
        else:
            extra.pop("nutrition", None)

        ingredients = tuple(
            Ingredient.from_dict(i) for i in _to_list(data.get("extendedIngredients")) if isinstance(i, Mapping)
        )
        diets = tuple(d for d in _to_list(data.get("diets")) if isinstance(d, str))
        breakdown = data.get("priceBreakdown")

        flags = {attr: _to_bool(data.get(key)) for key, attr in _FLAG_FIELDS.items()}

        return cls(
            id=recipe_id,
            title=_to_str(data.get("title")),
            summary=_to_str(data.get("summary")),
            price_per_serving=to_float(data.get("pricePerServing")),
            ready_in_minutes=to_int(data.get("readyInMinutes")),
            servings=to_int(data.get("servings")),
            extended_ingredients=ingredients,
            nutrients=nutrients,
            diets=diets,
            health_score=to_float(data.get("healthScore")),
            aggregate_likes=to_int(data.get("aggregateLikes")),
            image=data.get("image"),
            source_url=data.get("sourceUrl"),
            price_breakdown=dict(breakdown) if isinstance(breakdown, Mapping) else None,
            total_ingredient_cost=to_float(data.get("totalIngredientCost")),
            total_cost_per_serving=to_float(data.get("totalCostPerServing")),
            extra=extra,
            **flags,
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = dict(self.extra)
        stored = out.get("nutrition")
        nutrition = dict(stored) if isinstance(stored, Mapping) else {}
        nutrition["nutrients"] = [n.to_dict() for n in self.nutrients]
        out.update(
            {
                "id": self.id,
                "title": self.title,
                "summary": self.summary,
                "pricePerServing": self.price_per_serving,
                "readyInMinutes": self.ready_in_minutes,
                "servings": self.servings,
                "extendedIngredients": [i.to_dict() for i in self.extended_ingredients],
                "nutrition": nutrition,
                "diets": list(self.diets),
                "healthScore": self.health_score,
                "aggregateLikes": self.aggregate_likes,
                "image": self.image,
                "sourceUrl": self.source_url,
                NORMALIZED_MARKER: True,
            }
        )
        for key, attr in _FLAG_FIELDS.items():
            value = getattr(self, attr)
            if value is not None:
                out[key] = value
        if self.price_breakdown is not None:
            out["priceBreakdown"] = self.price_breakdown
        if self.total_ingredient_cost is not None:
            out["totalIngredientCost"] = self.total_ingredient_cost
        if self.total_cost_per_serving is not None:
            out["totalCostPerServing"] = self.total_cost_per_serving
        return out


@dataclass(frozen=True)
class SearchFilters:
    """Validated text/filter search request. Build with filters.parse_search_filters()."""

    number: int = 10
    query: Optional[str] = None
    diet: Optional[str] = None
    max_ready_time: Optional[int] = None
    min_calories: Optional[int] = None
    max_calories: Optional[int] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    intolerances: Tuple[str, ...] = ()


@dataclass(frozen=True)
class IngredientSearchFilters(SearchFilters):
    """Ingredient-based search request. Build with filters.parse_ingredient_filters()."""

    ingredients: Tuple[str, ...] = ()
    ranking: int = 1
    ignore_pantry: bool = True


@dataclass
class StoredRecipeRow:
    """One row of the Supabase `recipes` table (minus the internal recipe_id)."""

    spoonacular_id: int
    title: str
    description: Optional[str]
    servings: Optional[int]
    source_url: Optional[str]
    image_url: Optional[str]
    ready_in_minutes: Optional[int]
    price_per_serving: Optional[float]
    summary: Optional[str]
    raw_data: Dict[str, Any]
    updated_at: str

    @classmethod
    def from_recipe(cls, recipe: Recipe) -> "StoredRecipeRow":
        return cls(
            spoonacular_id=recipe.id,
            title=recipe.title or "Untitled Recipe",
            description=recipe.summary or _to_str(recipe.extra.get("description")) or None,
            servings=recipe.servings or None,
            source_url=recipe.source_url or None,
            image_url=recipe.image or None,
            ready_in_minutes=recipe.ready_in_minutes or None,
            price_per_serving=recipe.price_per_serving,
            summary=recipe.summary or None,
            raw_data=recipe.to_dict(),
            updated_at=datetime.now(timezone.utc).isoformat(),
        )

    def to_payload(self) -> Dict[str, Any]:
        return {
            "spoonacular_id": self.spoonacular_id,
            "title": self.title,
            "description": self.description,
            "servings": self.servings,
            "source_url": self.source_url,
            "image_url": self.image_url,
            "ready_in_minutes": self.ready_in_minutes,
            "price_per_serving": self.price_per_serving,
            "summary": self.summary,
            "raw_data": self.raw_data,
            "updated_at": self.updated_at,
        }
