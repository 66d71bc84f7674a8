"""Ordered rule table mapping canonical endpoints onto the secondary provider's shape."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from fin_gateway.rules.categories import (
    HISTORICAL_PATTERN,
    PROFILE_PATTERN,
    QUOTE_PATTERN,
    SEARCH_PATTERN,
)
from fin_gateway.schemas.models import ApiVariant, TargetRequest

LOGGER = logging.getLogger(__name__)

RuleTransform = Callable[[re.Match[str], Mapping[str, str]], TargetRequest]

GENERIC_TICKER_RULE = "ticker-generic"


@dataclass(frozen=True)
class QueryParamRenameTable:
    """Explicit canonical->target renames; anything else is forwarded unless dropped."""

    renames: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    drop: frozenset[str] = frozenset()

    def apply(self, params: Mapping[str, str]) -> dict[str, str]:
        result: dict[str, str] = {}
        for key, value in params.items():
            if key in self.drop:
                continue
            target_key = self.renames.get(key, key)
            if target_key != key:
                LOGGER.debug("Query param renamed", extra={"from_param": key, "to_param": target_key})
            result[target_key] = value
        return result


@dataclass(frozen=True)
class EndpointRule:
    """Anchored path pattern paired with a pure transform."""

    name: str
    pattern: re.Pattern[str]
    transform: RuleTransform

    def apply(self, path: str, params: Mapping[str, str]) -> TargetRequest | None:
        """Return the target request, or None when the pattern does not match."""

        match = self.pattern.fullmatch(path)
        if match is None:
            return None
        return self.transform(match, params).model_copy(update={"rule": self.name})


PASSTHROUGH_QUERY = QueryParamRenameTable()
HISTORICAL_QUERY = QueryParamRenameTable(renames=MappingProxyType({"start_date": "from", "end_date": "to"}))
SEARCH_QUERY = QueryParamRenameTable(renames=MappingProxyType({"q": "query"}))


def _historical(match: re.Match[str], params: Mapping[str, str]) -> TargetRequest:
    return TargetRequest(
        path=f"/historical-price-full/{match.group(1)}",
        query_params=HISTORICAL_QUERY.apply(params),
        variant=ApiVariant.STABLE,
    )


def _profile(match: re.Match[str], params: Mapping[str, str]) -> TargetRequest:
    return _profile_for_symbol(match.group(1), params)


def _quote(match: re.Match[str], params: Mapping[str, str]) -> TargetRequest:
    return TargetRequest(
        path=f"/quote/{match.group(1)}",
        query_params=PASSTHROUGH_QUERY.apply(params),
        variant=ApiVariant.STABLE,
    )


def _search(_: re.Match[str], params: Mapping[str, str]) -> TargetRequest:
    return TargetRequest(path="/search", query_params=SEARCH_QUERY.apply(params), variant=ApiVariant.STABLE)


def _profile_for_symbol(symbol: str, params: Mapping[str, str]) -> TargetRequest:
    query = PASSTHROUGH_QUERY.apply(params)
    query["symbol"] = symbol
    return TargetRequest(path="/profile", query_params=query, variant=ApiVariant.STABLE)


# More specific patterns must come before generic ones.
DEFAULT_RULES: tuple[EndpointRule, ...] = (
    EndpointRule("historical", HISTORICAL_PATTERN, _historical),
    EndpointRule("profile", PROFILE_PATTERN, _profile),
    EndpointRule("quote", QUOTE_PATTERN, _quote),
    EndpointRule("search", SEARCH_PATTERN, _search),
)


class EndpointRuleEngine:
    """First-match scan over an immutable rule table.

    Paths under ``generic_prefix`` that no rule matches are routed to the
    profile shape using their second segment as the symbol. Anything else is
    passed through unchanged and reported as a rule-table gap.
    """

    def __init__(self, rules: Sequence[EndpointRule] = DEFAULT_RULES, generic_prefix: str = "/tickers/") -> None:
        self._rules = tuple(rules)
        self._generic_prefix = generic_prefix

    @property
    def rules(self) -> tuple[EndpointRule, ...]:
        return self._rules

    def transform(self, canonical_path: str, query_params: Mapping[str, str] | None = None) -> TargetRequest:
        """Map a canonical path and query onto a secondary provider request. Never raises."""

        path = canonical_path if isinstance(canonical_path, str) else ""
        params = _normalize_params(query_params)

        for rule in self._rules:
            try:
                target = rule.apply(path, params)
            except Exception:  # noqa: BLE001
                LOGGER.exception("Endpoint rule failed", extra={"rule": rule.name, "endpoint": path})
                continue
            if target is not None:
                LOGGER.debug("Endpoint rule matched", extra={"rule": rule.name, "endpoint": path})
                return target

        if path.startswith(self._generic_prefix):
            parts = path.split("/")
            if len(parts) >= 3 and parts[2]:
                LOGGER.info(
                    "Generic ticker rule applied",
                    extra={"rule": GENERIC_TICKER_RULE, "endpoint": path, "symbol": parts[2]},
                )
                return _profile_for_symbol(parts[2], params).model_copy(update={"rule": GENERIC_TICKER_RULE})

        LOGGER.warning("No endpoint rule matched, passing request through as-is", extra={"endpoint": path})
        return TargetRequest(path=path, query_params=params, variant=ApiVariant.STABLE, rule=None)


def _normalize_params(query_params: Mapping[str, str] | Iterable[tuple[Any, Any]] | None) -> dict[str, str]:
    """Coerce query params to a ``str -> str`` dict; later duplicates win."""

    if not query_params:
        return {}
    items = query_params.items() if isinstance(query_params, Mapping) else query_params
    params: dict[str, str] = {}
    try:
        for key, value in items:
            params[str(key)] = "" if value is None else str(value)
    except (TypeError, ValueError):
        LOGGER.warning("Malformed query parameters ignored", extra={"query_type": type(query_params).__name__})
        return {}
    return params
