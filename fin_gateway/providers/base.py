"""Provider abstraction for upstream financial-data APIs."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from fin_gateway.utils.http import HttpClient, HttpTransportError

# Connection-scoped or proxy-rewritten headers never forwarded upstream.
HOP_BY_HOP_HEADERS = frozenset(
    {
        "host",
        "content-length",
        "connection",
        "keep-alive",
        "transfer-encoding",
        "te",
        "trailer",
        "upgrade",
        "proxy-authorization",
        "proxy-authenticate",
        "x-forwarded-host",
        "x-forwarded-port",
        "accept-encoding",
    },
)


class ProviderCallError(RuntimeError):
    """An upstream call that returned status >= 400 or failed at the transport level."""

    def __init__(self, provider: str, reason: str, status_code: int | None = None) -> None:
        super().__init__(f"{provider}: {reason}")
        self.provider = provider
        self.reason = reason
        self.status_code = status_code


@dataclass(frozen=True)
class ProviderResponse:
    """Successful upstream response."""

    status_code: int
    body: str


def forwardable_headers(headers: Mapping[str, str] | None) -> dict[str, str]:
    """Drop hop-by-hop headers, keeping everything else verbatim."""

    if not headers:
        return {}
    return {key: value for key, value in headers.items() if key.lower() not in HOP_BY_HOP_HEADERS}


class BaseUpstreamProvider:
    """Shared dispatch for one upstream; one attempt per call, no retries."""

    name: str

    def __init__(self, http_client: HttpClient, timeout_seconds: float) -> None:
        self._http_client = http_client
        self._timeout_seconds = timeout_seconds

    async def _dispatch(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
        body: str | None = None,
    ) -> ProviderResponse:
        try:
            response = await self._http_client.request(
                method,
                url,
                timeout_seconds=self._timeout_seconds,
                params=params,
                headers=headers,
                content=body,
            )
        except HttpTransportError as error:
            raise ProviderCallError(self.name, str(error)) from error
        if response.status_code >= 400:
            raise ProviderCallError(
                self.name,
                f"HTTP {response.status_code} from {url}",
                status_code=response.status_code,
            )
        return ProviderResponse(status_code=response.status_code, body=response.text)
