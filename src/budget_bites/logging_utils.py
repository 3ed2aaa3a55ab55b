# logging_utils.py
"""
Shared structured logging utilities for the BudgetBites recipe core.

One log entry is one pipe-delimited line:

<RunId>|<Date>|<Time>|<Level>|<File:Line>|<Module.Func>|<ModulePurpose>|
<InvokingFunc>|<InvokingFuncPurpose>|<Detail>|<NextStep>|<Resolution>|<END>

Components never raise external/persistence failures to their callers, so
these lines are the only place such failures become visible. Every
component takes an optional `log` argument and falls back to
`get_logger(<module>)`, which lets the web layer (or a test) inject its own.
"""

from __future__ import annotations

import datetime
import logging
import uuid
from typing import Dict

LOG_RUN_ID: str = uuid.uuid4().hex[:8]
# Alias for compatibility with callers that use RUN_ID
RUN_ID: str = LOG_RUN_ID


class StructuredFormatter(logging.Formatter):
    """
    Formatter that emits a single '|' separated line per record.

    Optional context is read from the record, supplied via
    `logger.<level>(..., extra={...})`:
      invoking_func, invoking_purpose, next_step, resolution, run_id
    """

    # High-level purposes by module name
    MODULE_PURPOSES: Dict[str, str] = {
        "normalizer": "Convert raw Spoonacular payloads into canonical Recipe values",
        "cost_enricher": "Attach per-ingredient cost from Spoonacular price breakdowns",
        "recipe_store": "Supabase-backed read-through cache of normalized recipes",
        "detail_resolver": "Resolve ordered recipe ids to detailed, cost-enriched recipes",
        "filters": "Parse search filters and apply diet/intolerance/time/price/calorie constraints",
        "search": "Local-first recipe search with external top-up for the shortfall",
        "spoonacular": "Async HTTP client for the Spoonacular recipe API",
        "service": "Recipe service facade used by the route layer",
        "list_builder": "Aggregate recipe ingredients into an aisle-grouped grocery list",
        "preference_ranker": "Re-rank recipes by a user's sort key and weighted score",
        "preference_store": "Load user ranking preferences from Supabase",
        "config": "Create Supabase client and Spoonacular settings from environment variables",
        "discover_run": "Command-line runner for recipe search and grocery lists",
    }

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        """Format log record into structured pipe-delimited format."""
        dt = datetime.datetime.fromtimestamp(record.created)
        date_str = dt.strftime("%Y-%m-%d")
        time_str = dt.strftime("%H:%M:%S")

        run_id = getattr(record, "run_id", RUN_ID)

        level = record.levelname
        code_location = f"{record.filename}:{record.lineno}"
        func_name = record.funcName
        module_name = record.module
        module_purpose = self.MODULE_PURPOSES.get(module_name, "")

        invoking_func = getattr(record, "invoking_func", "")
        invoking_purpose = getattr(record, "invoking_purpose", "")
        next_step = getattr(record, "next_step", "")
        resolution = getattr(record, "resolution", "")

        detail = record.getMessage()
        if record.exc_info:
            detail = f"{detail} | EXC={self.formatException(record.exc_info)!r}"

        return (
            f"{run_id}|{date_str}|{time_str}|{level}|{code_location}|"
            f"{module_name}.{func_name}|{module_purpose}|"
            f"{invoking_func}|{invoking_purpose}|"
            f"{detail}|{next_step}|{resolution}|<END>"
        )


def init_logging(level: int = logging.INFO) -> None:
    """
    Initialize root logger once with our StructuredFormatter.

    Call get_logger() from modules instead of calling logging.basicConfig()
    everywhere, so configuration stays central.
    """
    root = logging.getLogger()
    if root.handlers:
        # Already configured (web server, REPL, pytest) – avoid double handlers
        return

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    root.addHandler(handler)
    root.setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """
    Return a logger configured with structured formatting.

    Usage:
        logger = get_logger("recipe_store")
        logger.warning(
            "Could not load cached recipes: %s",
            exc,
            extra={
                "invoking_func": "RecipeCacheStore.find_by_ids",
                "invoking_purpose": "Batch cache lookup",
                "next_step": "Treat cache as empty",
                "resolution": "Check Supabase connectivity",
            },
        )
    """
    init_logging()
    return logging.getLogger(f"budget_bites.{name}")
