"""
preference_store.py

Load a user's ranking preferences from the Supabase `user_preferences`
table (columns: user_id, sort_by, sort_order, priority_factors jsonb).

A missing row, or any Supabase error, yields None: the caller then keeps
the search order.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from supabase import AsyncClient

from budget_bites.logging_utils import get_logger
from budget_bites.recommendation.preference_ranker import UserPreferences

logger = get_logger("preference_store")

PREFERENCES_TABLE = "user_preferences"


class PreferenceStore:
    def __init__(self, client: AsyncClient, log: Optional[logging.Logger] = None) -> None:
        self.client = client
        self.logger = log or logger

    async def get_user_preferences(self, user_id: Any) -> Optional[UserPreferences]:
        if user_id is None or user_id == "":
            return None

        try:
            res = await (
                self.client.table(PREFERENCES_TABLE)
                .select("sort_by,sort_order,priority_factors")
                .eq("user_id", user_id)
                .limit(1)
                .execute()
            )
        except Exception as exc:  # noqa: BLE001
            self.logger.warning(
                "Could not load preferences for user %s: %s",
                user_id,
                exc,
                extra={
                    "invoking_func": "PreferenceStore.get_user_preferences",
                    "invoking_purpose": "Load user ranking preferences",
                    "next_step": "Keep search order (no re-ranking)",
                    "resolution": "Check Supabase connectivity / user_preferences table",
                },
            )
            return None

        rows = res.data or []
        return UserPreferences.from_mapping(rows[0]) if rows else None
