"""Client disconnects abort in-flight upstream work on a real server."""

from __future__ import annotations

import asyncio
import socket

import httpx
import uvicorn

from fin_gateway.config.settings import Settings
from fin_gateway.main import create_app

PRIMARY_HOST = "api.synthfinance.com"


def _free_port() -> int:
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def test_disconnect_cancels_primary_and_skips_fallback() -> None:
    started: list[str] = []
    completed: list[str] = []

    async def slow_upstream(request: httpx.Request) -> httpx.Response:
        started.append(request.url.host)
        await asyncio.sleep(1.5)
        completed.append(request.url.host)
        return httpx.Response(500, text="down")

    async def scenario() -> None:
        port = _free_port()
        app = create_app(Settings(_env_file=None, fmp_api_key="k"), transport=httpx.MockTransport(slow_upstream))
        server = uvicorn.Server(uvicorn.Config(app, host="127.0.0.1", port=port, log_config=None))
        serving = asyncio.create_task(server.serve())
        try:
            while not server.started:
                await asyncio.sleep(0.01)
            _, writer = await asyncio.open_connection("127.0.0.1", port)
            writer.write(b"GET /synth/quote/AAPL HTTP/1.1\r\nHost: localhost\r\n\r\n")
            await writer.drain()
            await asyncio.sleep(0.2)
            writer.close()
            await writer.wait_closed()
            await asyncio.sleep(2.0)
        finally:
            server.should_exit = True
            await serving

    asyncio.run(scenario())
    assert started == [PRIMARY_HOST]
    assert completed == []
