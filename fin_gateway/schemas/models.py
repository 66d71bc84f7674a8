"""Typed request/response models shared across the gateway."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

JSON_CONTENT_TYPE = "application/json"


class ApiVariant(str, Enum):
    """API generation exposed by the secondary provider."""

    STABLE = "stable"
    LEGACY = "legacy"


class EndpointCategory(str, Enum):
    """Canonical endpoint families known to the gateway."""

    HISTORICAL = "historical"
    PROFILE = "profile"
    QUOTE = "quote"
    SEARCH = "search"


class FailureClassification(str, Enum):
    """Outcome of a primary provider attempt."""

    SUCCESS = "success"
    RETRYABLE_FAILURE = "retryable_failure"
    # Reserved: nothing is classified as non-retryable yet.
    NON_RETRYABLE_FAILURE = "non_retryable_failure"


class CanonicalRequest(BaseModel):
    """Inbound request addressed to the canonical API, provider prefix already stripped."""

    model_config = ConfigDict(frozen=True)

    method: str = "GET"
    path: str
    query_params: dict[str, str] = Field(default_factory=dict)
    headers: dict[str, str] = Field(default_factory=dict)
    body: str = ""


class TargetRequest(BaseModel):
    """Secondary provider request produced by an endpoint rule."""

    model_config = ConfigDict(frozen=True)

    path: str
    query_params: dict[str, str] = Field(default_factory=dict)
    variant: ApiVariant = ApiVariant.STABLE
    rule: str | None = None

    @property
    def matched(self) -> bool:
        return self.rule is not None


class GatewayResponse(BaseModel):
    """Final status and JSON body returned to the caller."""

    model_config = ConfigDict(frozen=True)

    status_code: int
    body: str
    source: str | None = None
    fallback_used: bool = False
    media_type: str = JSON_CONTENT_TYPE


class ShapeResult(BaseModel):
    """Reshaped body, or the original body with ``reshaped`` unset on passthrough."""

    model_config = ConfigDict(frozen=True)

    body: str
    reshaped: bool
    category: EndpointCategory | None = None

    def json_payload(self) -> Any:
        """Parse the body; only valid when the body is JSON."""

        return json.loads(self.body)
