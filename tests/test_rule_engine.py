"""Tests for canonical -> secondary endpoint rules."""

from __future__ import annotations

import logging
import re

import pytest

from fin_gateway.rules.engine import (
    DEFAULT_RULES,
    GENERIC_TICKER_RULE,
    EndpointRule,
    EndpointRuleEngine,
    QueryParamRenameTable,
)
from fin_gateway.schemas.models import ApiVariant, TargetRequest


def test_historical_rule_renames_dates_and_keeps_limit() -> None:
    engine = EndpointRuleEngine()
    target = engine.transform(
        "/tickers/AAPL/open-close",
        {"start_date": "2023-01-01", "end_date": "2023-12-31", "limit": "30"},
    )
    assert target.path == "/historical-price-full/AAPL"
    assert target.query_params == {"from": "2023-01-01", "to": "2023-12-31", "limit": "30"}
    assert target.variant is ApiVariant.STABLE
    assert target.rule == "historical"


def test_historical_rule_forwards_unknown_params() -> None:
    target = EndpointRuleEngine().transform("/tickers/MSFT/open-close", {"serietype": "line"})
    assert target.query_params == {"serietype": "line"}


def test_profile_rule_adds_symbol() -> None:
    target = EndpointRuleEngine().transform("/tickers/AAPL", {})
    assert target.path == "/profile"
    assert target.query_params == {"symbol": "AAPL"}
    assert target.rule == "profile"


def test_quote_rule_is_identity() -> None:
    target = EndpointRuleEngine().transform("/quote/TSLA", {"extended": "true"})
    assert target.path == "/quote/TSLA"
    assert target.query_params == {"extended": "true"}


def test_search_rule_renames_q_and_keeps_limit() -> None:
    target = EndpointRuleEngine().transform("/search", {"q": "AAPL", "limit": "10"})
    assert target.path == "/search"
    assert target.query_params == {"query": "AAPL", "limit": "10"}


def test_unexpected_ticker_shape_routes_to_profile() -> None:
    target = EndpointRuleEngine().transform("/tickers/NVDA/news/latest", {"page": "2"})
    assert target.path == "/profile"
    assert target.query_params == {"page": "2", "symbol": "NVDA"}
    assert target.rule == GENERIC_TICKER_RULE


def test_unmatched_path_passes_through_and_is_logged(caplog) -> None:
    caplog.set_level(logging.WARNING, logger="fin_gateway.rules.engine")
    target = EndpointRuleEngine().transform("/unknown-thing", {"a": "1", "b": "2"})
    assert target.path == "/unknown-thing"
    assert target.query_params == {"a": "1", "b": "2"}
    assert target.rule is None
    assert not target.matched
    assert any("No endpoint rule matched" in record.getMessage() for record in caplog.records)


@pytest.mark.parametrize("path", ["", "/tickers/", "tickers/AAPL", "/search/extra", "//"])
def test_malformed_paths_never_raise(path: str) -> None:
    target = EndpointRuleEngine().transform(path, None)
    assert isinstance(target, TargetRequest)


def test_non_string_inputs_never_raise() -> None:
    engine = EndpointRuleEngine()
    assert engine.transform(None, None).path == ""  # type: ignore[arg-type]
    assert engine.transform("/search", "garbage").query_params == {}  # type: ignore[arg-type]


def test_transform_is_deterministic() -> None:
    engine = EndpointRuleEngine()
    cases = [
        ("/tickers/AAPL/open-close", {"start_date": "2023-01-01", "limit": "5"}),
        ("/tickers/AAPL", {}),
        ("/quote/AAPL", {"x": "y"}),
        ("/search", {"q": "apple"}),
    ]
    for path, params in cases:
        assert engine.transform(path, params) == engine.transform(path, dict(params))


def test_transform_does_not_mutate_input_params() -> None:
    params = {"q": "AAPL", "limit": "10"}
    EndpointRuleEngine().transform("/search", params)
    assert params == {"q": "AAPL", "limit": "10"}


def _fixed(path: str):
    return lambda _match, params: TargetRequest(path=path, query_params=dict(params))


def test_earlier_rule_wins_for_overlapping_patterns() -> None:
    specific = EndpointRule("specific", re.compile(r"^/items/special$"), _fixed("/special"))
    generic = EndpointRule("generic", re.compile(r"^/items/([^/]+)$"), _fixed("/generic"))

    specific_first = EndpointRuleEngine(rules=[specific, generic])
    generic_first = EndpointRuleEngine(rules=[generic, specific])

    assert specific_first.transform("/items/special", {}).path == "/special"
    assert generic_first.transform("/items/special", {}).path == "/generic"
    assert specific_first.transform("/items/other", {}).path == "/generic"


def test_default_rules_order_puts_historical_before_profile() -> None:
    names = [rule.name for rule in DEFAULT_RULES]
    assert names.index("historical") < names.index("profile")


@pytest.mark.parametrize("name", ["limit", "serietype", "page", "timeseries", "apikey_hint"])
@pytest.mark.parametrize("value", ["", "10", "a b", "2023-01-01"])
def test_params_outside_rename_tables_pass_unchanged(name: str, value: str) -> None:
    engine = EndpointRuleEngine()
    for path in ("/tickers/AAPL/open-close", "/search", "/quote/AAPL", "/tickers/AAPL"):
        assert engine.transform(path, {name: value}).query_params[name] == value


def test_rename_table_drops_listed_params() -> None:
    table = QueryParamRenameTable(renames={"q": "query"}, drop=frozenset({"debug"}))
    assert table.apply({"q": "x", "debug": "1", "keep": "y"}) == {"query": "x", "keep": "y"}


def test_rule_never_injects_credentials() -> None:
    engine = EndpointRuleEngine()
    for path in ("/tickers/AAPL/open-close", "/tickers/AAPL", "/quote/AAPL", "/search"):
        assert "apikey" not in engine.transform(path, {"q": "x"}).query_params
