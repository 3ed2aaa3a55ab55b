"""
Custom exception classes for the recipe core
"""
from __future__ import annotations

from typing import Optional


class BudgetBitesError(Exception):
    """Base exception for the recipe core"""
    pass


class RecipeApiError(BudgetBitesError):
    """Raised by the Spoonacular client on transport, HTTP or decoding failures"""
    def __init__(self, endpoint: str, detail: str, status_code: Optional[int] = None):
        self.endpoint = endpoint
        self.detail = detail
        self.status_code = status_code
        status = f" (HTTP {status_code})" if status_code is not None else ""
        super().__init__(f"Spoonacular request to '{endpoint}' failed{status}: {detail}")
