"""Secondary provider: issues rule-engine target requests against the matching API generation."""

from __future__ import annotations

from fin_gateway.config.settings import SecondaryProviderConfig
from fin_gateway.providers.base import BaseUpstreamProvider, ProviderResponse, forwardable_headers
from fin_gateway.schemas.models import JSON_CONTENT_TYPE, ApiVariant, CanonicalRequest, TargetRequest
from fin_gateway.utils.http import HttpClient

BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


class FmpProvider(BaseUpstreamProvider):
    """Fallback upstream with an incompatible URL and field-naming convention."""

    def __init__(self, config: SecondaryProviderConfig, api_key: str, http_client: HttpClient) -> None:
        super().__init__(http_client, config.timeout_seconds)
        self.name = config.name
        self._api_key = api_key
        self._api_key_param = config.api_key_param
        self._base_urls = {
            ApiVariant.STABLE: config.stable_url.rstrip("/"),
            ApiVariant.LEGACY: config.legacy_url.rstrip("/"),
        }

    def url_for(self, target: TargetRequest) -> str:
        return f"{self._base_urls[target.variant]}{target.path}"

    def query_for(self, target: TargetRequest) -> dict[str, str]:
        """Target query plus the credential, appended only when one is configured."""

        params = dict(target.query_params)
        if self._api_key:
            params[self._api_key_param] = self._api_key
        return params

    async def fetch(self, request: CanonicalRequest, target: TargetRequest) -> ProviderResponse:
        method = request.method.upper()
        headers = forwardable_headers(request.headers)
        if not any(key.lower() == "content-type" for key in headers):
            headers["Content-Type"] = JSON_CONTENT_TYPE
        body = request.body if method in BODY_METHODS and request.body else None
        return await self._dispatch(
            method,
            self.url_for(target),
            params=self.query_for(target),
            headers=headers,
            body=body,
        )
