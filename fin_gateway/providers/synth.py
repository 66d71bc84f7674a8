"""Primary provider: forwards canonical requests verbatim."""

from __future__ import annotations

from fin_gateway.config.settings import ProviderConfig
from fin_gateway.providers.base import BaseUpstreamProvider, ProviderResponse, forwardable_headers
from fin_gateway.schemas.models import CanonicalRequest
from fin_gateway.utils.http import HttpClient


class SynthProvider(BaseUpstreamProvider):
    """Canonical-shape upstream; requests need no transformation."""

    def __init__(self, config: ProviderConfig, http_client: HttpClient) -> None:
        super().__init__(http_client, config.timeout_seconds)
        self.name = config.name
        self._base_url = config.base_url.rstrip("/")

    async def forward(self, request: CanonicalRequest) -> ProviderResponse:
        return await self._dispatch(
            request.method,
            f"{self._base_url}{request.path}",
            params=request.query_params,
            headers=forwardable_headers(request.headers),
            body=request.body or None,
        )
