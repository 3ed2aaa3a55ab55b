"""Tests for the Supabase-backed recipe cache."""

from __future__ import annotations

import json
import logging

import pytest

from budget_bites.recipes.schema import Recipe, SearchFilters
from budget_bites.storage.recipe_store import RecipeCacheStore

from conftest import canonical_recipe


class TestUpsert:
    @pytest.mark.asyncio
    async def test_writes_denormalized_columns(self, supabase) -> None:
        store = RecipeCacheStore(supabase)
        recipe = canonical_recipe(42, pricePerServing=199, readyInMinutes=25)

        record_id = await store.upsert(recipe)

        assert record_id == 1
        (row,) = supabase.tables["recipes"]
        assert row["spoonacular_id"] == 42
        assert row["title"] == "Recipe 42"
        assert row["price_per_serving"] == 1.99
        assert row["ready_in_minutes"] == 25
        assert row["raw_data"]["pricePerServing"] == 1.99
        assert ("recipes", "upsert", "spoonacular_id") in supabase.calls

    @pytest.mark.asyncio
    async def test_is_idempotent_per_external_id(self, supabase) -> None:
        store = RecipeCacheStore(supabase)

        first = await store.upsert(canonical_recipe(42))
        second = await store.upsert(canonical_recipe(42, title="Renamed"))

        assert first == second
        assert len(supabase.tables["recipes"]) == 1
        assert supabase.tables["recipes"][0]["title"] == "Renamed"

    @pytest.mark.asyncio
    async def test_skips_none(self, supabase) -> None:
        assert await RecipeCacheStore(supabase).upsert(None) is None
        assert supabase.calls == []

    @pytest.mark.asyncio
    async def test_error_is_logged_not_raised(self, supabase, caplog) -> None:
        supabase.fail_ops.add("upsert")

        with caplog.at_level(logging.ERROR):
            assert await RecipeCacheStore(supabase).upsert(canonical_recipe(1)) is None
        assert "Error saving recipe 1" in caplog.text


class TestFindByIds:
    @pytest.mark.asyncio
    async def test_returns_map_keyed_by_external_id(self, supabase) -> None:
        supabase.seed_recipe(canonical_recipe(1))
        supabase.seed_recipe(canonical_recipe(2))
        store = RecipeCacheStore(supabase)

        found = await store.find_by_ids([2, 1, 2, 3])

        assert set(found) == {1, 2}
        assert isinstance(found[1], Recipe)
        assert ("recipes", "in_", "spoonacular_id", [2, 1, 3]) in supabase.calls

    @pytest.mark.asyncio
    async def test_cached_price_is_not_converted_again(self, supabase) -> None:
        store = RecipeCacheStore(supabase)
        await store.upsert(canonical_recipe(5, pricePerServing=375))

        found = await store.find_by_ids([5])

        assert found[5].price_per_serving == 3.75

    @pytest.mark.asyncio
    async def test_parses_string_blobs_and_skips_malformed_rows(self, supabase, caplog) -> None:
        supabase.tables["recipes"] = [
            {"spoonacular_id": 1, "raw_data": json.dumps({"title": "From string"})},
            {"spoonacular_id": 2, "raw_data": "{not json"},
            {"spoonacular_id": 3, "raw_data": ["not", "an", "object"]},
        ]

        with caplog.at_level(logging.WARNING):
            found = await RecipeCacheStore(supabase).find_by_ids([1, 2, 3])

        assert list(found) == [1]
        assert found[1].title == "From string"
        assert "malformed raw_data" in caplog.text

    @pytest.mark.asyncio
    async def test_empty_ids_make_no_query(self, supabase) -> None:
        assert await RecipeCacheStore(supabase).find_by_ids([]) == {}
        assert supabase.calls == []

    @pytest.mark.asyncio
    async def test_error_reads_as_empty(self, supabase) -> None:
        supabase.seed_recipe(canonical_recipe(1))
        supabase.fail_ops.add("select")

        assert await RecipeCacheStore(supabase).find_by_ids([1]) == {}


class TestSearchByFilters:
    @pytest.mark.asyncio
    async def test_applies_column_bounds_newest_first(self, supabase) -> None:
        supabase.seed_recipe(canonical_recipe(1, pricePerServing=150, readyInMinutes=20), updated_at="2024-01-01T00:00:00")
        supabase.seed_recipe(canonical_recipe(2, pricePerServing=450, readyInMinutes=20), updated_at="2024-01-02T00:00:00")
        supabase.seed_recipe(canonical_recipe(3, pricePerServing=250, readyInMinutes=90), updated_at="2024-01-03T00:00:00")
        supabase.seed_recipe(canonical_recipe(4, pricePerServing=300, readyInMinutes=15), updated_at="2024-01-04T00:00:00")
        filters = SearchFilters(max_ready_time=30, min_price=1.0, max_price=3.5)

        results = await RecipeCacheStore(supabase).search_by_filters(filters, limit=10)

        assert [r.id for r in results] == [4, 1]
        methods = supabase.methods()
        assert methods[-2:] == ["order", "limit"]
        assert ("recipes", "lte", "ready_in_minutes", 30) in supabase.calls

    @pytest.mark.asyncio
    async def test_respects_limit(self, supabase) -> None:
        for i in range(1, 6):
            supabase.seed_recipe(canonical_recipe(i), updated_at=f"2024-01-0{i}T00:00:00")

        results = await RecipeCacheStore(supabase).search_by_filters(SearchFilters(), limit=2)

        assert [r.id for r in results] == [5, 4]

    @pytest.mark.asyncio
    async def test_error_reads_as_empty(self, supabase) -> None:
        supabase.fail_ops.add("select")

        assert await RecipeCacheStore(supabase).search_by_filters(SearchFilters(), limit=5) == []


class TestGetRecordId:
    @pytest.mark.asyncio
    async def test_returns_internal_id(self, supabase) -> None:
        supabase.seed_recipe(canonical_recipe(10))
        supabase.seed_recipe(canonical_recipe(20))
        store = RecipeCacheStore(supabase)

        assert await store.get_record_id(20) == 2
        assert await store.get_record_id(30) is None
        assert await store.get_record_id(None) is None
