"""llm-proxy - authenticating reverse proxy for LLM vendor APIs.

Forwards requests under ``/openai/`` and ``/anthropic/`` to the configured
upstreams, swapping the caller's proxy token for the vendor credential and
streaming bodies in both directions.

Modules:
    config          Environment-sourced, immutable process configuration
    routing         Upstream selection and URL reconstruction
    headers         Hop-header filtering and credential injection
    errors          ConfigError and the fixed 401/404/502 responses
    server          aiohttp application and forwarding handler
    tracing         Per-request trace ids for log lines
    logging_config  Text/JSON logging setup
    cli             ``llm-proxy`` command

Usage:
    >>> from llm_proxy import ProxyServer, load_config
    >>> import asyncio
    >>>
    >>> server = ProxyServer(config=load_config())
    >>> asyncio.run(server.serve())
"""

from llm_proxy.__version__ import __version__
from llm_proxy.config import ProxyConfig, load_config
from llm_proxy.errors import ConfigError
from llm_proxy.server import ProxyServer

__all__ = [
    "__version__",
    "ConfigError",
    "ProxyConfig",
    "ProxyServer",
    "load_config",
]
