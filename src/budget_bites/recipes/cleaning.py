# src/budget_bites/recipes/cleaning.py
from __future__ import annotations

"""
cleaning.py

Purpose:
    Deterministic text helpers shared by the normalizer, the filter parser,
    the cost enricher and the grocery list builder.
"""

import html
import re
from typing import Any, Iterable, Optional, Tuple

_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")
_DIET_SEPARATORS_RE = re.compile(r"[-_\s]+")


def strip_html_tags(text: Optional[str]) -> str:
    """Remove HTML tags, unescape entities, collapse whitespace."""
    if not isinstance(text, str):
        return ""
    t = _TAG_RE.sub(" ", text)
    t = html.unescape(t)
    t = _WS_RE.sub(" ", t)
    return t.strip()


def lookup_key(text: Optional[str]) -> str:
    """Lowercased, trimmed key used to match ingredient names."""
    if not isinstance(text, str):
        return ""
    return text.strip().lower()


def normalize_diet(diet: Any) -> Optional[str]:
    """
    "Gluten-Free" -> "gluten free", "low_fodmap" -> "low fodmap".
    Empty values and the form placeholder "none" mean no diet.
    """
    if not isinstance(diet, str):
        return None
    t = _DIET_SEPARATORS_RE.sub(" ", diet.strip().lower()).strip()
    if not t or t == "none":
        return None
    return t


def split_csv_list(value: Any) -> Tuple[str, ...]:
    """Accept "a, b" or ["a", "b"]; return lowercased, trimmed, non-empty items."""
    if value is None:
        return ()
    if isinstance(value, str):
        parts: Iterable[Any] = value.split(",")
    elif isinstance(value, (list, tuple, set)):
        parts = value
    else:
        return ()
    out = []
    for p in parts:
        if not isinstance(p, str):
            continue
        p = p.strip().lower()
        if p:
            out.append(p)
    return tuple(out)
