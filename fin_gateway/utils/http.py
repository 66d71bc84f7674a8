"""Async HTTP client with per-call timeout support."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

import httpx

# Responses are streamed and abandoned once they grow past this size.
MAX_RESPONSE_BYTES = 10 * 1024 * 1024


class HttpTransportError(RuntimeError):
    """Raised when no HTTP response could be obtained (timeout, refused, DNS, oversize)."""


@dataclass(frozen=True)
class HttpResult:
    """Fully read upstream response."""

    status_code: int
    text: str


class HttpClient:
    """Thin wrapper around httpx; exactly one attempt per call."""

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport | None = None,
        max_response_bytes: int = MAX_RESPONSE_BYTES,
    ) -> None:
        self._client = httpx.AsyncClient(transport=transport, follow_redirects=True)
        self._max_response_bytes = max_response_bytes

    async def request(
        self,
        method: str,
        url: str,
        *,
        timeout_seconds: float,
        params: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
        content: str | None = None,
    ) -> HttpResult:
        """Send a request and return the response body, whatever its status."""

        request = self._client.build_request(
            method,
            url,
            params=dict(params) if params else None,
            headers=dict(headers) if headers else None,
            content=content.encode("utf-8") if content else None,
            timeout=timeout_seconds,
        )
        try:
            response = await self._client.send(request, stream=True)
            try:
                body = await self._read_capped(response, url)
            finally:
                await response.aclose()
        except httpx.TimeoutException as error:
            raise HttpTransportError(f"HTTP request timed out for URL: {url}") from error
        except httpx.HTTPError as error:
            raise HttpTransportError(f"HTTP request failed for URL: {url}") from error
        return HttpResult(
            status_code=response.status_code,
            text=body.decode(response.encoding or "utf-8", errors="replace"),
        )

    async def _read_capped(self, response: httpx.Response, url: str) -> bytes:
        chunks: list[bytes] = []
        size = 0
        async for chunk in response.aiter_bytes():
            size += len(chunk)
            if size > self._max_response_bytes:
                raise HttpTransportError(f"HTTP response too large for URL: {url}")
            chunks.append(chunk)
        return b"".join(chunks)

    async def close(self) -> None:
        """Close underlying transport."""

        await self._client.aclose()
