"""Process configuration for the proxy.

All values are resolved once from the environment at startup and frozen into
a single ``ProxyConfig`` that is handed to the server.

Environment Variables:
    OPENAI_BASE_URL: OpenAI upstream base URL (required)
    OPENAI_API_KEY: Key injected as ``Authorization: Bearer`` (required)
    ANTHROPIC_BASE_URL: Anthropic upstream base URL (required)
    ANTHROPIC_API_KEY: Key injected as ``x-api-key`` (required)
    PROXY_TOKEN: Bearer token every inbound caller must present (required)
    PORT: Listening port (default: 33000)
    HOST: Listening interface (default: 0.0.0.0)
    ANTHROPIC_VERSION: Default ``anthropic-version`` header for Anthropic calls
    UPSTREAM_CONNECT_TIMEOUT: Upstream connect timeout in seconds (default: none)
    UPSTREAM_READ_TIMEOUT: Upstream read timeout in seconds (default: none)
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from urllib.parse import urlsplit

from llm_proxy.errors import ConfigError

DEFAULT_PORT = 33000
DEFAULT_HOST = "0.0.0.0"


@dataclass(frozen=True)
class ProxyConfig:
    """Immutable settings for one proxy process."""

    openai_base_url: str
    openai_api_key: str
    anthropic_base_url: str
    anthropic_api_key: str
    proxy_token: str
    port: int = DEFAULT_PORT
    host: str = DEFAULT_HOST
    anthropic_version: str | None = None

    # Upstream client timeouts, None means no limit
    connect_timeout: float | None = None
    read_timeout: float | None = None


def _require(environ: Mapping[str, str], name: str) -> str:
    value = environ.get(name)
    if not value:
        raise ConfigError(f"Missing required env: {name}")
    return value


def _base_url(environ: Mapping[str, str], name: str) -> str:
    value = _require(environ, name)
    parts = urlsplit(value)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ConfigError(f"{name} must be an absolute http(s) URL, got: {value!r}")
    return value


def _port(environ: Mapping[str, str]) -> int:
    raw = environ.get("PORT")
    if not raw:
        return DEFAULT_PORT
    try:
        port = int(raw)
    except ValueError:
        raise ConfigError(f"PORT must be an integer, got: {raw!r}") from None
    if not 0 <= port <= 65535:
        raise ConfigError(f"PORT out of range: {port}")
    return port


def _timeout(environ: Mapping[str, str], name: str) -> float | None:
    raw = environ.get(name)
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number of seconds, got: {raw!r}") from None
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got: {raw!r}")
    return value


def load_config(environ: Mapping[str, str] | None = None) -> ProxyConfig:
    """Build the proxy configuration from environment values.

    Args:
        environ: Mapping to read from. Defaults to ``os.environ``.

    Returns:
        Frozen configuration.

    Raises:
        ConfigError: If a required value is missing or a value is malformed.
    """
    env = os.environ if environ is None else environ

    return ProxyConfig(
        openai_base_url=_base_url(env, "OPENAI_BASE_URL"),
        openai_api_key=_require(env, "OPENAI_API_KEY"),
        anthropic_base_url=_base_url(env, "ANTHROPIC_BASE_URL"),
        anthropic_api_key=_require(env, "ANTHROPIC_API_KEY"),
        proxy_token=_require(env, "PROXY_TOKEN"),
        port=_port(env),
        host=env.get("HOST") or DEFAULT_HOST,
        anthropic_version=env.get("ANTHROPIC_VERSION") or None,
        connect_timeout=_timeout(env, "UPSTREAM_CONNECT_TIMEOUT"),
        read_timeout=_timeout(env, "UPSTREAM_READ_TIMEOUT"),
    )
