"""Reshape secondary provider bodies into the canonical response schema."""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from fin_gateway.rules.categories import classify_path, extract_symbol
from fin_gateway.schemas.models import EndpointCategory, ShapeResult

LOGGER = logging.getLogger(__name__)

DEFAULT_CURRENCY = "USD"


def _as_float(value: Any) -> float | None:
    """Convert value to float safely."""

    if value in (None, "", "None", "null") or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def _as_int(value: Any) -> int | None:
    """Convert value to int safely, truncating decimals."""

    if value in (None, "", "None", "null") or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        pass
    number = _as_float(value)
    return None if number is None else int(number)


def _as_text(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value)


@dataclass(frozen=True)
class FieldMap:
    """Copy the first present, non-null and convertible source key into ``target``."""

    target: str
    sources: tuple[str, ...]
    convert: Callable[[Any], Any] = _as_text

    def read(self, record: Mapping[str, Any]) -> Any:
        for source in self.sources:
            value = record.get(source)
            if value is None:
                continue
            converted = self.convert(value)
            if converted is not None:
                return converted
        return None


def _field(target: str, *sources: str, convert: Callable[[Any], Any] = _as_text) -> FieldMap:
    return FieldMap(target=target, sources=sources or (target,), convert=convert)


HISTORICAL_FIELDS: tuple[FieldMap, ...] = (
    _field("date"),
    _field("open", convert=_as_float),
    _field("high", convert=_as_float),
    _field("low", convert=_as_float),
    _field("close", convert=_as_float),
    _field("volume", convert=_as_int),
)

PROFILE_FIELDS: tuple[FieldMap, ...] = (
    _field("ticker", "symbol"),
    _field("name", "companyName"),
    _field("currency"),
    _field("cik"),
    _field("change", "changes", convert=_as_float),
    _field("marketCap", convert=_as_int),
    _field("sector"),
    _field("industry"),
    _field("description"),
    _field("website"),
    _field("ceo"),
    _field("total_employees", "fullTimeEmployees", convert=_as_int),
    _field("phone"),
)

PROFILE_MARKET_DATA_FIELDS: tuple[FieldMap, ...] = (
    _field("close_today", "price"),
    _field("volume_today", "volume"),
)

PROFILE_ADDRESS_FIELDS: tuple[FieldMap, ...] = (
    _field("address_line1", "address"),
    _field("city"),
    _field("country"),
    _field("postal_code", "zip"),
    _field("state"),
)

QUOTE_FIELDS: tuple[FieldMap, ...] = (
    _field("price", convert=_as_float),
    # the legacy API generation names this field "changes"
    _field("change", "change", "changes", convert=_as_float),
    _field("changePercent", convert=_as_float),
    _field("dayLow", convert=_as_float),
    _field("dayHigh", convert=_as_float),
    _field("yearLow", convert=_as_float),
    _field("yearHigh", convert=_as_float),
    _field("marketCap", convert=_as_int),
    _field("volume", convert=_as_int),
    _field("avgVolume", convert=_as_int),
    _field("open", convert=_as_float),
    _field("previousClose", convert=_as_float),
    _field("eps", convert=_as_float),
    _field("pe", convert=_as_float),
    _field("earningsAnnouncement"),
    _field("sharesOutstanding", convert=_as_int),
    _field("timestamp", convert=_as_int),
)

SEARCH_FIELDS: tuple[FieldMap, ...] = (
    _field("symbol"),
    _field("name"),
    _field("currency"),
    _field("exchange", "stockExchange"),
    _field("exchangeShort", "exchangeShortName"),
)


def copy_fields(record: Mapping[str, Any], fields: tuple[FieldMap, ...]) -> dict[str, Any]:
    """Copy mapped fields; absent, null or unconvertible values are omitted."""

    result: dict[str, Any] = {}
    for field_map in fields:
        value = field_map.read(record)
        if value is not None:
            result[field_map.target] = value
    return result


def _first_record(payload: Any) -> Mapping[str, Any]:
    """Accept a single object or an array of objects and return the first object."""

    if isinstance(payload, list):
        if not payload:
            return {}
        payload = payload[0]
    if not isinstance(payload, Mapping):
        raise TypeError(f"Expected JSON object, got {type(payload).__name__}")
    return payload


def shape_historical(payload: Any, canonical_path: str) -> dict[str, Any]:
    ticker = None
    days: Any = None
    if isinstance(payload, Mapping):
        ticker = _as_text(payload.get("symbol")) or None
        days = payload.get("historical")
    elif isinstance(payload, list):
        days = payload
    prices = []
    if isinstance(days, list):
        prices = [copy_fields(day, HISTORICAL_FIELDS) for day in days if isinstance(day, Mapping)]
    return {
        "ticker": ticker or extract_symbol(canonical_path),
        "currency": DEFAULT_CURRENCY,
        "type": EndpointCategory.HISTORICAL.value,
        "prices": prices,
    }


def shape_profile(payload: Any, canonical_path: str) -> dict[str, Any]:
    record = _first_record(payload)
    data = copy_fields(record, PROFILE_FIELDS)
    market_data = copy_fields(record, PROFILE_MARKET_DATA_FIELDS)
    if market_data:
        data["market_data"] = market_data
    address = copy_fields(record, PROFILE_ADDRESS_FIELDS)
    if address:
        data["address"] = address
    return {
        "symbol": extract_symbol(canonical_path),
        "type": EndpointCategory.PROFILE.value,
        "data": data,
    }


def shape_quote(payload: Any, canonical_path: str) -> dict[str, Any]:
    record = _first_record(payload)
    return {
        "symbol": extract_symbol(canonical_path),
        "type": EndpointCategory.QUOTE.value,
        "data": copy_fields(record, QUOTE_FIELDS),
    }


def shape_search(payload: Any, canonical_path: str) -> dict[str, Any]:
    _ = canonical_path
    results: list[dict[str, Any]] = []
    if isinstance(payload, list):
        # Non-object entries become empty results so the output keeps the input length.
        results = [copy_fields(entry, SEARCH_FIELDS) if isinstance(entry, Mapping) else {} for entry in payload]
    return {"type": EndpointCategory.SEARCH.value, "results": results}


class ResponseShaper:
    """Dispatch a secondary body to the shaper for its canonical endpoint category.

    Never raises: unknown categories and failed transforms return the body
    unchanged with ``ShapeResult.reshaped`` unset.
    """

    def __init__(self) -> None:
        self._shapers: Mapping[EndpointCategory, Callable[[Any, str], dict[str, Any]]] = MappingProxyType(
            {
                EndpointCategory.HISTORICAL: shape_historical,
                EndpointCategory.PROFILE: shape_profile,
                EndpointCategory.QUOTE: shape_quote,
                EndpointCategory.SEARCH: shape_search,
            },
        )

    def reshape(self, secondary_body: str | bytes | dict[str, Any] | list[Any], canonical_path: str) -> ShapeResult:
        raw = _raw_text(secondary_body)
        category = classify_path(canonical_path)
        if category is None:
            LOGGER.warning("No response shaping for endpoint, returning body as-is", extra={"endpoint": canonical_path})
            return ShapeResult(body=raw, reshaped=False)

        try:
            payload = json.loads(raw) if isinstance(secondary_body, (str, bytes, bytearray)) else secondary_body
            body = json.dumps(self._shapers[category](payload, canonical_path), allow_nan=False)
        except Exception:  # noqa: BLE001
            LOGGER.exception(
                "Response shaping failed, returning body as-is",
                extra={"endpoint": canonical_path, "category": category.value},
            )
            return ShapeResult(body=raw, reshaped=False, category=category)

        LOGGER.debug("Response reshaped", extra={"endpoint": canonical_path, "category": category.value})
        return ShapeResult(body=body, reshaped=True, category=category)


def _raw_text(body: Any) -> str:
    if isinstance(body, (bytes, bytearray)):
        return bytes(body).decode("utf-8", errors="replace")
    if isinstance(body, str):
        return body
    try:
        return json.dumps(body)
    except (TypeError, ValueError):
        return str(body)
