"""Shared fixtures: an in-memory Supabase stand-in and a scripted Spoonacular API."""

from __future__ import annotations

import copy
from typing import Any, Callable, Dict, List, Optional
from unittest.mock import AsyncMock

import pytest

from budget_bites.recipes.exceptions import RecipeApiError
from budget_bites.recipes.schema import Recipe, StoredRecipeRow


# ---------------------------------------------------------------------------
# Supabase
# ---------------------------------------------------------------------------
class FakeResponse:
    def __init__(self, data: List[Dict[str, Any]]) -> None:
        self.data = data


class FakeQuery:
    """Chainable subset of the postgrest query builder used by the stores."""

    def __init__(self, db: "FakeSupabase", table: str) -> None:
        self.db = db
        self.table_name = table
        self.op = "select"
        self.payload: Optional[Dict[str, Any]] = None
        self.on_conflict: Optional[str] = None
        self.predicates: List[Callable[[Dict[str, Any]], bool]] = []
        self.order_key: Optional[str] = None
        self.order_desc = False
        self.row_limit: Optional[int] = None

    def _log(self, method: str, *args: Any) -> None:
        self.db.calls.append((self.table_name, method) + args)

    def select(self, columns: str = "*") -> "FakeQuery":
        self._log("select", columns)
        self.op = "select"
        return self

    def upsert(self, payload: Dict[str, Any], on_conflict: Optional[str] = None) -> "FakeQuery":
        self._log("upsert", on_conflict)
        self.op = "upsert"
        self.payload = payload
        self.on_conflict = on_conflict
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self._log("eq", column, value)
        self.predicates.append(lambda r: r.get(column) == value)
        return self

    def in_(self, column: str, values: List[Any]) -> "FakeQuery":
        self._log("in_", column, list(values))
        allowed = list(values)
        self.predicates.append(lambda r: r.get(column) in allowed)
        return self

    def lte(self, column: str, value: Any) -> "FakeQuery":
        self._log("lte", column, value)
        self.predicates.append(lambda r: r.get(column) is not None and r.get(column) <= value)
        return self

    def gte(self, column: str, value: Any) -> "FakeQuery":
        self._log("gte", column, value)
        self.predicates.append(lambda r: r.get(column) is not None and r.get(column) >= value)
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self._log("order", column, desc)
        self.order_key = column
        self.order_desc = desc
        return self

    def limit(self, n: int) -> "FakeQuery":
        self._log("limit", n)
        self.row_limit = n
        return self

    async def execute(self) -> FakeResponse:
        if self.op in self.db.fail_ops:
            raise RuntimeError(f"supabase {self.op} unavailable")

        if self.op == "upsert":
            return FakeResponse([self.db.store_row(self.table_name, self.payload or {}, self.on_conflict)])

        rows = [r for r in self.db.tables.get(self.table_name, []) if all(p(r) for p in self.predicates)]
        if self.order_key:
            rows.sort(key=lambda r: r.get(self.order_key) or "", reverse=self.order_desc)
        if self.row_limit is not None:
            rows = rows[: self.row_limit]
        return FakeResponse([copy.deepcopy(r) for r in rows])


class FakeSupabase:
    """In-memory tables with just enough query semantics for the stores."""

    def __init__(self) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.calls: List[tuple] = []
        self.fail_ops: set = set()
        self._next_id = 1

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def store_row(self, table: str, payload: Dict[str, Any], on_conflict: Optional[str]) -> Dict[str, Any]:
        rows = self.tables.setdefault(table, [])
        if on_conflict:
            for row in rows:
                if row.get(on_conflict) == payload.get(on_conflict):
                    row.update(copy.deepcopy(payload))
                    return copy.deepcopy(row)
        row = copy.deepcopy(payload)
        row.setdefault("recipe_id", self._next_id)
        self._next_id += 1
        rows.append(row)
        return copy.deepcopy(row)

    def seed_recipe(self, recipe: Recipe, updated_at: Optional[str] = None) -> Dict[str, Any]:
        payload = StoredRecipeRow.from_recipe(recipe).to_payload()
        if updated_at:
            payload["updated_at"] = updated_at
        return self.store_row("recipes", payload, "spoonacular_id")

    def methods(self, table: str = "recipes") -> List[str]:
        return [c[1] for c in self.calls if c[0] == table]


# ---------------------------------------------------------------------------
# Spoonacular
# ---------------------------------------------------------------------------
class FakeSpoonacular:
    """
    Scripted API. Every endpoint is an AsyncMock so tests can assert calls.
    Unknown ids answer 404 like the real service.
    """

    def __init__(self) -> None:
        self.information: Dict[int, Any] = {}
        self.breakdowns: Dict[int, Any] = {}
        self.search_body: Any = {"results": []}
        self.ingredient_hits: Any = []

        self.get_recipe_information = AsyncMock(side_effect=self._information)
        self.get_recipe_price_breakdown = AsyncMock(side_effect=self._breakdown)
        self.search_recipes = AsyncMock(side_effect=self._search)
        self.search_recipes_by_ingredients = AsyncMock(side_effect=self._by_ingredients)
        self.aclose = AsyncMock()

    @staticmethod
    def _answer(endpoint: str, value: Any) -> Any:
        if value is None:
            raise RecipeApiError(endpoint, "not found", status_code=404)
        if isinstance(value, Exception):
            raise value
        return copy.deepcopy(value)

    def _information(self, recipe_id: int, include_nutrition: bool = True) -> Any:
        return self._answer(f"/recipes/{recipe_id}/information", self.information.get(recipe_id))

    def _breakdown(self, recipe_id: int) -> Any:
        return self._answer(f"/recipes/{recipe_id}/priceBreakdownWidget.json", self.breakdowns.get(recipe_id))

    def _search(self, params: Dict[str, Any]) -> Any:
        return self._answer("/recipes/complexSearch", self.search_body)

    def _by_ingredients(self, params: Dict[str, Any]) -> Any:
        return self._answer("/recipes/findByIngredients", self.ingredient_hits)

    def external_calls(self) -> int:
        return sum(
            m.await_count
            for m in (
                self.get_recipe_information,
                self.get_recipe_price_breakdown,
                self.search_recipes,
                self.search_recipes_by_ingredients,
            )
        )


# ---------------------------------------------------------------------------
# Payload factories
# ---------------------------------------------------------------------------
def api_ingredient(name: str, amount: float = 1, unit: str = "", aisle: str = "Produce", cost_cents: Optional[float] = None, **extra: Any) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "id": sum(map(ord, name)),
        "name": name,
        "original": f"{amount} {unit} {name}".replace("  ", " "),
        "amount": amount,
        "unit": unit,
        "aisle": aisle,
        "image": f"{name}.jpg",
    }
    if cost_cents is not None:
        data["estimatedCost"] = {"value": cost_cents, "unit": "US Cents"}
    data.update(extra)
    return data


def api_recipe(recipe_id: int, **overrides: Any) -> Dict[str, Any]:
    """Spoonacular-shaped information payload; pricePerServing is in cents."""
    data: Dict[str, Any] = {
        "id": recipe_id,
        "title": f"Recipe {recipe_id}",
        "summary": f"<b>Recipe {recipe_id}</b> is tasty.",
        "pricePerServing": 250,
        "readyInMinutes": 30,
        "servings": 4,
        "vegetarian": True,
        "vegan": False,
        "glutenFree": True,
        "dairyFree": False,
        "diets": ["lacto ovo vegetarian"],
        "healthScore": 40,
        "aggregateLikes": 10,
        "image": f"https://img.example/{recipe_id}.jpg",
        "sourceUrl": f"https://example.com/{recipe_id}",
        "extendedIngredients": [api_ingredient("Onion", 1, cost_cents=50), api_ingredient("Tomato", 2, cost_cents=80)],
        "nutrition": {"nutrients": [{"name": "Calories", "amount": 450.0, "unit": "kcal"}]},
    }
    data.update(overrides)
    return data


def canonical_recipe(recipe_id: int, **overrides: Any) -> Recipe:
    """A Recipe as it sits in the cache (major-unit prices)."""
    from budget_bites.recipes.normalizer import normalize_api_recipe

    recipe = normalize_api_recipe(api_recipe(recipe_id, **overrides))
    assert recipe is not None
    return recipe


@pytest.fixture
def supabase() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def api() -> FakeSpoonacular:
    return FakeSpoonacular()
