# src/budget_bites/grocery/list_builder.py
from __future__ import annotations

"""
list_builder.py

Purpose:
    Aggregate the ingredients of a week's recipes into one shopping list,
    sorted and grouped by store aisle, with estimated cost rollups.

Notes:
    - Ingredients merge by lowercased, trimmed name (or original text).
    - Amounts from different recipes are summed WITHOUT unit conversion.
    - Per-item cost is re-rendered to 2 decimals after every addition; the
      grand total accumulates raw cost and is rounded once at the end, so
      the two can drift by a cent. Both are display values.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from budget_bites.recipes.schema import Recipe


@dataclass
class GroceryItem:
    id: Optional[int]
    name: str
    original: str
    amount: float
    unit: str
    aisle: str
    image: Optional[str]
    estimated_cost: str                   # currency units, 2 decimals
    recipes: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "original": self.original,
            "amount": self.amount,
            "unit": self.unit,
            "aisle": self.aisle,
            "image": self.image,
            "estimatedCost": self.estimated_cost,
            "recipes": list(self.recipes),
        }


@dataclass
class GroceryList:
    items: List[GroceryItem]
    grouped_by_aisle: Dict[str, List[GroceryItem]]
    total_estimated_cost: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "groceryList": [i.to_dict() for i in self.items],
            "groupedByAisle": {
                aisle: [i.to_dict() for i in items] for aisle, items in self.grouped_by_aisle.items()
            },
            "totalEstimatedCost": self.total_estimated_cost,
        }


def build_grocery_list(recipes: Optional[Iterable[Optional[Recipe]]]) -> GroceryList:
    by_key: Dict[str, GroceryItem] = {}
    total = 0.0

    for recipe in recipes or []:
        if recipe is None or not recipe.extended_ingredients:
            continue

        for ingredient in recipe.extended_ingredients:
            resolved_name = (ingredient.name or ingredient.original or "").strip()
            if not resolved_name:
                continue

            key = resolved_name.lower()
            cost_cents = ingredient.estimated_cost.value if ingredient.estimated_cost else None
            cost = (cost_cents or 0) / 100
            total += cost

            existing = by_key.get(key)
            if existing is not None:
                existing.amount += ingredient.amount or 0
                existing.recipes.append(recipe.title)
                if cost > 0:
                    previous = float(existing.estimated_cost or 0)
                    existing.estimated_cost = f"{previous + cost:.2f}"
                continue

            by_key[key] = GroceryItem(
                id=ingredient.id,
                name=ingredient.name or resolved_name,
                original=ingredient.original,
                amount=ingredient.amount or 0,
                unit=ingredient.unit or "",
                aisle=ingredient.aisle or "Unknown",
                image=ingredient.image,
                estimated_cost=f"{cost:.2f}",
                recipes=[recipe.title],
            )

    # sorted() is stable: equal aisles keep first-seen order
    items = sorted(by_key.values(), key=lambda item: item.aisle)

    grouped: Dict[str, List[GroceryItem]] = {}
    for item in items:
        grouped.setdefault(item.aisle or "Unknown", []).append(item)

    return GroceryList(items=items, grouped_by_aisle=grouped, total_estimated_cost=f"{total:.2f}")
