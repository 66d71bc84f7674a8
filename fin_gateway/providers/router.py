"""Provider routing and fallback orchestration."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from http import HTTPStatus

from fin_gateway.providers.fmp import FmpProvider
from fin_gateway.providers.synth import SynthProvider
from fin_gateway.rules.engine import EndpointRuleEngine
from fin_gateway.schemas.models import CanonicalRequest, FailureClassification, GatewayResponse
from fin_gateway.shaping.shaper import ResponseShaper

LOGGER = logging.getLogger(__name__)


def classify_primary_outcome(error: BaseException | None) -> FailureClassification:
    """Any status >= 400 or transport error is fallback-worthy; 404 and 500 are not distinguished."""

    if error is None:
        return FailureClassification.SUCCESS
    return FailureClassification.RETRYABLE_FAILURE


def service_unavailable(
    endpoint: str,
    primary_name: str,
    secondary_name: str,
    primary_error: BaseException | None,
    secondary_error: BaseException,
) -> GatewayResponse:
    """Terminal error returned when both providers failed."""

    payload = {
        "error": "Service unavailable",
        "message": f"Both {primary_name} and {secondary_name} APIs failed",
        "endpoint": endpoint,
        "primary_error": str(primary_error) if primary_error else None,
        "secondary_error": str(secondary_error),
    }
    return GatewayResponse(status_code=HTTPStatus.SERVICE_UNAVAILABLE.value, body=json.dumps(payload))


@dataclass
class FallbackOrchestrator:
    """Call the primary provider, then the secondary one through the rule engine on failure.

    The two calls are strictly sequential and each provider gets exactly one
    attempt. Cancellation of the caller propagates into whichever call is in
    flight.
    """

    primary: SynthProvider
    secondary: FmpProvider
    rule_engine: EndpointRuleEngine = field(default_factory=EndpointRuleEngine)
    shaper: ResponseShaper = field(default_factory=ResponseShaper)

    async def handle(self, request: CanonicalRequest) -> GatewayResponse:
        endpoint = request.path
        LOGGER.info(
            "Calling primary provider",
            extra={"provider": self.primary.name, "endpoint": endpoint, "method": request.method},
        )
        primary_error: Exception | None = None
        try:
            result = await self.primary.forward(request)
        except Exception as error:  # noqa: BLE001
            primary_error = error

        classification = classify_primary_outcome(primary_error)
        if classification is FailureClassification.SUCCESS:
            LOGGER.info(
                "Primary provider call successful",
                extra={"provider": self.primary.name, "endpoint": endpoint, "status_code": result.status_code},
            )
            return GatewayResponse(status_code=result.status_code, body=result.body, source=self.primary.name)

        LOGGER.warning(
            "Primary provider failure",
            extra={
                "provider": self.primary.name,
                "endpoint": endpoint,
                "classification": classification.value,
                "status_code": getattr(primary_error, "status_code", None),
                "error": str(primary_error),
            },
        )
        return await self._fallback(request, primary_error)

    async def _fallback(self, request: CanonicalRequest, primary_error: Exception | None) -> GatewayResponse:
        endpoint = request.path
        target = self.rule_engine.transform(endpoint, request.query_params)
        LOGGER.info(
            "Triggering fallback to secondary provider",
            extra={
                "provider": self.secondary.name,
                "endpoint": endpoint,
                "target_path": target.path,
                "target_params": target.query_params,
                "variant": target.variant.value,
                "rule": target.rule,
            },
        )
        try:
            result = await self.secondary.fetch(request, target)
        except Exception as error:  # noqa: BLE001
            LOGGER.error(
                "Both primary and secondary providers failed",
                extra={"provider": self.secondary.name, "endpoint": endpoint, "error": str(error)},
            )
            return service_unavailable(endpoint, self.primary.name, self.secondary.name, primary_error, error)

        shaped = self.shaper.reshape(result.body, endpoint)
        LOGGER.info(
            "Secondary provider fallback successful",
            extra={
                "provider": self.secondary.name,
                "endpoint": endpoint,
                "reshaped": shaped.reshaped,
                "category": shaped.category.value if shaped.category else None,
            },
        )
        return GatewayResponse(
            status_code=HTTPStatus.OK.value,
            body=shaped.body,
            source=self.secondary.name,
            fallback_used=True,
        )
