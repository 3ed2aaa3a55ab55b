"""
config.py

Purpose:
    Build the two external collaborators of the recipe core from environment
    variables:
      - get_supabase_client(): async Supabase client for the recipes cache
      - get_spoonacular_settings(): API key / base URL / timeout for Spoonacular

Usage:
    from budget_bites.config import get_supabase_client, get_spoonacular_settings
"""
from __future__ import annotations

import os
from dataclasses import dataclass

# Async Supabase client (supabase-py v2). Connection details are not hardcoded.
from supabase import AsyncClient, acreate_client

from dotenv import load_dotenv  # Load environment variables from .env file

load_dotenv()  # loads .env

DEFAULT_SPOONACULAR_BASE_URL = "https://api.spoonacular.com"
DEFAULT_SPOONACULAR_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True)
class SpoonacularSettings:
    api_key: str
    base_url: str = DEFAULT_SPOONACULAR_BASE_URL
    timeout_seconds: float = DEFAULT_SPOONACULAR_TIMEOUT_SECONDS


async def get_supabase_client() -> AsyncClient:
    """Create an async Supabase client using env vars."""
    url = os.environ["SUPABASE_URL"]
    key = os.environ["SUPABASE_SERVICE_ROLE_KEY"]  # server-side key; never shipped to browsers
    return await acreate_client(url, key)


def get_spoonacular_settings() -> SpoonacularSettings:
    """Read Spoonacular settings; SPOONACULAR_API_KEY is required."""
    timeout_raw = os.getenv("SPOONACULAR_TIMEOUT_SECONDS", "")
    try:
        timeout = float(timeout_raw) if timeout_raw else DEFAULT_SPOONACULAR_TIMEOUT_SECONDS
    except ValueError:
        timeout = DEFAULT_SPOONACULAR_TIMEOUT_SECONDS

    return SpoonacularSettings(
        api_key=os.environ["SPOONACULAR_API_KEY"],
        base_url=os.getenv("SPOONACULAR_BASE_URL", DEFAULT_SPOONACULAR_BASE_URL).rstrip("/"),
        timeout_seconds=timeout,
    )
