"""Tests for preference-based re-ranking and the preference store."""

from __future__ import annotations

import pytest

from budget_bites.recipes.schema import Nutrient, Recipe
from budget_bites.recommendation.preference_ranker import (
    DEFAULT_PRIORITY_FACTORS,
    PreferenceRanker,
    UserPreferences,
    sort_by_preferences,
)
from budget_bites.recommendation.preference_store import PreferenceStore


def recipe(recipe_id: int, price=None, minutes=None, calories=None, health=None, likes=None) -> Recipe:
    nutrients = (Nutrient("Calories", calories, "kcal"),) if calories is not None else ()
    return Recipe(
        id=recipe_id,
        price_per_serving=price,
        ready_in_minutes=minutes,
        nutrients=nutrients,
        health_score=health,
        aggregate_likes=likes,
    )


def ids(recipes):
    return [r.id for r in recipes]


class TestSortByPreferences:
    def test_price_ascending_missing_last(self) -> None:
        recipes = [recipe(1, price=3.0), recipe(2), recipe(3, price=1.5), recipe(4, price=2.25)]

        ranked = sort_by_preferences(recipes, {"sort_by": "price", "sort_order": "asc"})

        assert ids(ranked) == [3, 4, 1, 2]
        priced = [r.price_per_serving for r in ranked if r.price_per_serving is not None]
        assert priced == sorted(priced)

    def test_desc_flips_comparison(self) -> None:
        recipes = [recipe(1, price=3.0), recipe(2), recipe(3, price=1.5)]

        ranked = sort_by_preferences(recipes, {"sort_by": "price", "sort_order": "desc"})

        assert ids(ranked) == [2, 1, 3]

    def test_time_ascending_missing_last(self) -> None:
        recipes = [recipe(1, minutes=45), recipe(2, minutes=None), recipe(3, minutes=10)]

        assert ids(sort_by_preferences(recipes, {"sort_by": "time"})) == [3, 1, 2]

    def test_calories_missing_counts_as_zero(self) -> None:
        recipes = [recipe(1, calories=600), recipe(2), recipe(3, calories=300)]

        assert ids(sort_by_preferences(recipes, {"sort_by": "calories"})) == [2, 3, 1]

    def test_health_and_popularity_are_descending(self) -> None:
        recipes = [recipe(1, health=10, likes=500), recipe(2, health=90, likes=5), recipe(3)]

        assert ids(sort_by_preferences(recipes, {"sort_by": "health"})) == [2, 1, 3]
        assert ids(sort_by_preferences(recipes, {"sort_by": "popularity"})) == [1, 2, 3]

    def test_relevance_is_default(self) -> None:
        cheap_quick = recipe(1, price=1.0, minutes=10, calories=300, health=50)
        pricey_slow = recipe(2, price=8.0, minutes=90, calories=300, health=50)

        ranked = sort_by_preferences([pricey_slow, cheap_quick], UserPreferences())

        assert ids(ranked) == [1, 2]

    def test_ties_keep_input_order(self) -> None:
        recipes = [recipe(1, price=2.0), recipe(2, price=2.0), recipe(3, price=2.0)]

        assert ids(sort_by_preferences(recipes, {"sort_by": "price"})) == [1, 2, 3]

    def test_input_list_is_not_reordered(self) -> None:
        recipes = [recipe(1, price=3.0), recipe(2, price=1.0)]

        sort_by_preferences(recipes, {"sort_by": "price"})

        assert ids(recipes) == [1, 2]

    @pytest.mark.parametrize("preferences", [None, {}])
    def test_no_preferences_returns_input(self, preferences) -> None:
        recipes = [recipe(2), recipe(1)]

        assert sort_by_preferences(recipes, preferences) is recipes

    def test_empty_recipes(self) -> None:
        assert sort_by_preferences([], {"sort_by": "price"}) == []
        assert sort_by_preferences(None, {"sort_by": "price"}) is None


class TestRelevanceScore:
    def test_weighted_sum(self) -> None:
        ranker = PreferenceRanker(UserPreferences())
        r = recipe(1, price=2.0, minutes=30, calories=500, health=40)

        # (100 - 20) + (100 - 30) + 50 + 40
        assert ranker.relevance_score(r) == 240

    def test_zero_weight_drops_term(self) -> None:
        prefs = UserPreferences(priority_factors={"price": 0, "time": 2, "calories": 0, "health": 0})
        r = recipe(1, price=2.0, minutes=30, calories=500, health=40)

        assert PreferenceRanker(prefs).relevance_score(r) == 140

    def test_stored_factors_replace_defaults(self) -> None:
        prefs = UserPreferences.from_mapping({"priority_factors": {"health": 3}})

        assert prefs.priority_factors == {"health": 3}
        assert PreferenceRanker(prefs).relevance_score(recipe(1, price=2.0, health=10)) == 30

    def test_empty_stored_factors_zero_every_term(self) -> None:
        prefs = UserPreferences.from_mapping({"priority_factors": {}})
        r = recipe(1, price=2.0, minutes=30, calories=500, health=40)

        assert prefs.priority_factors == {}
        assert PreferenceRanker(prefs).relevance_score(r) == 0

    def test_mapping_defaults(self) -> None:
        prefs = UserPreferences.from_mapping({"sort_by": None, "priority_factors": None})

        assert prefs.sort_by == "relevance"
        assert prefs.sort_order == "asc"
        assert prefs.priority_factors == DEFAULT_PRIORITY_FACTORS


class TestPreferenceStore:
    @pytest.mark.asyncio
    async def test_loads_preferences(self, supabase) -> None:
        supabase.tables["user_preferences"] = [
            {"user_id": "u1", "sort_by": "price", "sort_order": "desc", "priority_factors": {"price": 2}},
        ]

        prefs = await PreferenceStore(supabase).get_user_preferences("u1")

        assert prefs == UserPreferences(sort_by="price", sort_order="desc", priority_factors={"price": 2})

    @pytest.mark.asyncio
    async def test_unknown_user_and_errors_yield_none(self, supabase) -> None:
        store = PreferenceStore(supabase)

        assert await store.get_user_preferences("nobody") is None
        assert await store.get_user_preferences(None) is None

        supabase.fail_ops.add("select")
        assert await store.get_user_preferences("u1") is None
