"""CLI entry point."""

from __future__ import annotations

import asyncio
import dataclasses
import signal
import sys

import rich_click as click

from llm_proxy.config import ProxyConfig, load_config
from llm_proxy.errors import ConfigError
from llm_proxy.logging_config import LOG_LEVELS, configure_logging
from llm_proxy.server import ProxyServer

click.rich_click.USE_MARKDOWN = True
click.rich_click.MAX_WIDTH = 100


@click.group()
@click.version_option(package_name="llm-proxy")
def cli() -> None:
    """llm-proxy - authenticating reverse proxy for OpenAI and Anthropic.

    Callers send `Authorization: Bearer $PROXY_TOKEN` and a path under
    `/openai/` or `/anthropic/`; the proxy swaps in the vendor key and
    streams the upstream response back.
    """


@cli.command()
@click.option("--host", default=None, help="Interface to bind (overrides $HOST)")
@click.option(
    "--port",
    type=click.IntRange(0, 65535),
    default=None,
    help="Port to listen on (overrides $PORT)",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Log level (overrides $LLM_PROXY_LOG_LEVEL)",
)
@click.option(
    "--log-format",
    type=click.Choice(["text", "json"]),
    default=None,
    help="Log output format (overrides $LLM_PROXY_LOG_FORMAT)",
)
def serve(
    host: str | None,
    port: int | None,
    log_level: str | None,
    log_format: str | None,
) -> None:
    """Run the proxy until interrupted.

    Upstreams and credentials come from the environment:

        OPENAI_BASE_URL, OPENAI_API_KEY, ANTHROPIC_BASE_URL,
        ANTHROPIC_API_KEY, PROXY_TOKEN (required)

        PORT, HOST, ANTHROPIC_VERSION, UPSTREAM_CONNECT_TIMEOUT,
        UPSTREAM_READ_TIMEOUT (optional)

    **Examples:**

        llm-proxy serve

        llm-proxy serve --port 8080 --log-level debug
    """
    try:
        config = load_config()
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    overrides: dict[str, object] = {}
    if host is not None:
        overrides["host"] = host
    if port is not None:
        overrides["port"] = port
    if overrides:
        config = dataclasses.replace(config, **overrides)

    configure_logging(level=log_level, format=log_format)  # type: ignore[arg-type]
    try:
        asyncio.run(_serve(config))
    except OSError as e:
        click.echo(f"Error: cannot listen on {config.host}:{config.port}: {e}", err=True)
        sys.exit(1)


async def _serve(config: ProxyConfig) -> None:
    server = ProxyServer(config=config)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, server.request_shutdown)

    await server.serve()


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
