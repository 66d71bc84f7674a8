"""Canonical endpoint patterns shared by request rules and response shaping."""

from __future__ import annotations

import re

from fin_gateway.schemas.models import EndpointCategory

UNKNOWN_SYMBOL = "UNKNOWN"

HISTORICAL_PATTERN = re.compile(r"^/tickers/([^/]+)/open-close$")
PROFILE_PATTERN = re.compile(r"^/tickers/([^/]+)$")
QUOTE_PATTERN = re.compile(r"^/quote/([^/]+)$")
SEARCH_PATTERN = re.compile(r"^/search$")

# Order matters: first match wins.
CATEGORY_PATTERNS: tuple[tuple[EndpointCategory, re.Pattern[str]], ...] = (
    (EndpointCategory.HISTORICAL, HISTORICAL_PATTERN),
    (EndpointCategory.PROFILE, PROFILE_PATTERN),
    (EndpointCategory.QUOTE, QUOTE_PATTERN),
    (EndpointCategory.SEARCH, SEARCH_PATTERN),
)


def classify_path(path: str) -> EndpointCategory | None:
    """Return the endpoint category of a canonical path, or None when unknown."""

    if not isinstance(path, str):
        return None
    for category, pattern in CATEGORY_PATTERNS:
        if pattern.fullmatch(path):
            return category
    return None


def extract_symbol(path: str) -> str:
    """Second slash-delimited segment of the path (``/tickers/AAPL`` -> ``AAPL``)."""

    parts = path.split("/") if isinstance(path, str) else []
    if len(parts) >= 3 and parts[2]:
        return parts[2]
    return UNKNOWN_SYMBOL
