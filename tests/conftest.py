"""Pytest configuration and fixtures."""

from __future__ import annotations

import pytest
from aiohttp import web

from llm_proxy.config import ProxyConfig

PROXY_TOKEN = "pt"


async def start_app(app: web.Application) -> tuple[web.AppRunner, str]:
    """Serve ``app`` on a free local port and return its runner and base URL."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()

    actual_port = site._server.sockets[0].getsockname()[1]
    return runner, f"http://127.0.0.1:{actual_port}"


@pytest.fixture
async def serve_app():
    """Start aiohttp apps on free ports; all are cleaned up after the test."""
    runners: list[web.AppRunner] = []

    async def _serve(app: web.Application) -> str:
        runner, base_url = await start_app(app)
        runners.append(runner)
        return base_url

    yield _serve

    for runner in reversed(runners):
        await runner.cleanup()


@pytest.fixture
def proxy_config() -> ProxyConfig:
    """Config pointing at unreachable example hosts (mock them with aioresponses)."""
    return ProxyConfig(
        openai_base_url="https://openai.example",
        openai_api_key="ok",
        anthropic_base_url="https://anthropic.example",
        anthropic_api_key="ak",
        proxy_token=PROXY_TOKEN,
        port=0,
        host="127.0.0.1",
    )


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {PROXY_TOKEN}"}
