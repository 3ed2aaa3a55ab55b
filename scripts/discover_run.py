"""
discover_run.py

Purpose:
    Command-line runner for the BudgetBites recipe core.

    Runs one search end to end against the real Supabase cache and the
    Spoonacular API, re-ranks by a user's stored preferences (optional),
    and prints the results plus the aggregated grocery list.

Design:
    - Uses the shared LOG_RUN_ID (from logging_utils).
    - Emits a "Run Banner" at the start.
    - Safe to rerun: every write is an idempotent upsert keyed by Spoonacular id.

Usage:
    python scripts/discover_run.py --query pasta --diet vegetarian --number 5
    python scripts/discover_run.py --ingredients "tomato, basil" --grocery-list
    python scripts/discover_run.py --query soup --user-id 42
"""

from __future__ import annotations

import argparse
import asyncio
import datetime
from typing import Any, Dict, List

from budget_bites.logging_utils import LOG_RUN_ID, get_logger
from budget_bites.recipes.schema import Recipe
from budget_bites.recipes.service import build_recipe_service

logger = get_logger("discover_run")

MODULE_PURPOSE = "Command-line runner for recipe search and grocery lists"


# ---------------------------------------------------------------------------
# RUN BANNER
# ---------------------------------------------------------------------------
def print_run_banner(mode: str, raw_filters: Dict[str, Any]) -> None:
    now = datetime.datetime.now(datetime.timezone.utc)
    banner = [
        "\n===============================================================",
        "  BUDGETBITES DISCOVER RUN",
        f"  Run ID       : {LOG_RUN_ID}",
        f"  UTC Time     : {now.strftime('%Y-%m-%d %H:%M:%S')}",
        f"  Mode         : {mode}",
        "  Filters:",
    ]
    for key, value in raw_filters.items():
        if value not in (None, ""):
            banner.append(f"    • {key} = {value}")
    banner.append("===============================================================\n")
    print("\n".join(banner))


def print_recipes(recipes: List[Recipe]) -> None:
    for i, r in enumerate(recipes, start=1):
        price = f"${r.price_per_serving:.2f}" if r.price_per_serving is not None else "n/a"
        minutes = f"{r.ready_in_minutes} min" if r.ready_in_minutes else "n/a"
        print(f"{i:02d}. {r.title}  [{r.id}]  price/serving={price}  time={minutes}")


# ---------------------------------------------------------------------------
# MAIN SEQUENCE
# ---------------------------------------------------------------------------
async def run_discover(args: argparse.Namespace) -> None:
    raw_filters: Dict[str, Any] = {
        "query": args.query,
        "ingredients": args.ingredients,
        "diet": args.diet,
        "intolerances": args.intolerances,
        "maxReadyTime": args.max_ready_time,
        "minPrice": args.min_price,
        "maxPrice": args.max_price,
        "minCalories": args.min_calories,
        "maxCalories": args.max_calories,
        "number": args.number,
    }
    mode = "ingredients" if args.ingredients else "search"
    print_run_banner(mode, raw_filters)

    service = await build_recipe_service()
    try:
        if args.ingredients:
            recipes = await service.search_by_ingredients_with_fallback(raw_filters)
        else:
            recipes = await service.search_with_fallback(raw_filters)

        if args.user_id:
            preferences = await service.get_user_preferences(args.user_id)
            recipes = service.sort_by_preferences(recipes, preferences) or []

        logger.info(
            "Discover run returned %d recipe(s)",
            len(recipes),
            extra={
                "invoking_func": "run_discover",
                "invoking_purpose": MODULE_PURPOSE,
                "next_step": "Print results" + (" and grocery list" if args.grocery_list else ""),
                "resolution": "",
            },
        )
        print_recipes(recipes)

        if args.grocery_list and recipes:
            detailed = await service.get_detailed_recipes([r.id for r in recipes])
            grocery = service.build_grocery_list(detailed)
            print("\nGrocery list")
            for aisle, items in grocery.grouped_by_aisle.items():
                print(f"  {aisle}")
                for item in items:
                    print(f"    - {item.name}: {item.amount:g} {item.unit}  (${item.estimated_cost})")
            print(f"\nTotal estimated cost: ${grocery.total_estimated_cost}")
    finally:
        await service.aclose()


# ---------------------------------------------------------------------------
# CLI ENTRYPOINT
# ---------------------------------------------------------------------------
def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="BudgetBites recipe discovery runner")
    parser.add_argument("--query", help="Free-text recipe query")
    parser.add_argument("--ingredients", help="Comma-separated ingredients (switches to ingredient search)")
    parser.add_argument("--diet", help="Diet, e.g. vegetarian, 'gluten free', paleo")
    parser.add_argument("--intolerances", help="Comma-separated intolerances, e.g. dairy,peanut")
    parser.add_argument("--max-ready-time", type=int)
    parser.add_argument("--min-price", type=float, help="Min price per serving (dollars)")
    parser.add_argument("--max-price", type=float, help="Max price per serving (dollars)")
    parser.add_argument("--min-calories", type=int)
    parser.add_argument("--max-calories", type=int)
    parser.add_argument("--number", type=int, default=10)
    parser.add_argument("--user-id", help="Re-rank using this user's stored preferences")
    parser.add_argument("--grocery-list", action="store_true", help="Also print the grocery list")
    return parser.parse_args()


if __name__ == "__main__":
    asyncio.run(run_discover(parse_args()))
