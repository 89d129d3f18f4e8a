"""Upstream selection and URL reconstruction.

Requests are routed by path prefix:

    /openai/<rest>     -> OPENAI_BASE_URL + /<rest>
    /anthropic/<rest>  -> ANTHROPIC_BASE_URL + /<rest>

Upstream bases may carry their own path (e.g. ``https://host/v2``). That path
is kept and the relative path is appended to it, so a base mounted under a
prefix is neither lost nor doubled.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import urlsplit, urlunsplit

if TYPE_CHECKING:
    from llm_proxy.config import ProxyConfig

HEALTH_PATH = "/healthz"
OPENAI_PREFIX = "/openai"
ANTHROPIC_PREFIX = "/anthropic"


@dataclass(frozen=True)
class Upstream:
    """One vendor target selected for a request."""

    prefix: str
    base_url: str
    api_key: str


def select_upstream(path: str, config: ProxyConfig) -> Upstream | None:
    """Pick the upstream whose prefix matches ``path``, or None."""
    if path.startswith(OPENAI_PREFIX + "/"):
        return Upstream(OPENAI_PREFIX, config.openai_base_url, config.openai_api_key)
    if path.startswith(ANTHROPIC_PREFIX + "/"):
        return Upstream(ANTHROPIC_PREFIX, config.anthropic_base_url, config.anthropic_api_key)
    return None


def strip_prefix(path: str, prefix: str) -> str:
    """Remove ``prefix`` from ``path``, keeping a leading slash."""
    rel_path = path[len(prefix) :] if path.startswith(prefix) else path
    return rel_path if rel_path.startswith("/") else f"/{rel_path}"


def build_upstream_url(base_url: str, rel_path: str, query: str = "") -> str:
    """Join an upstream base URL with a request-relative path and query.

    Args:
        base_url: Configured upstream base, optionally with a path component.
        rel_path: Path after the routing prefix, already percent-encoded.
        query: Raw inbound query string without the leading ``?``.

    Returns:
        Absolute URL. The base's own query and any fragment are dropped.

    Example:
        >>> build_upstream_url("https://host/v2/", "/models", "x=1")
        'https://host/v2/models?x=1'
    """
    parts = urlsplit(base_url)
    base_path = parts.path[:-1] if parts.path.endswith("/") else parts.path
    if not rel_path.startswith("/"):
        rel_path = f"/{rel_path}"
    path = rel_path if base_path in ("", "/") else f"{base_path}{rel_path}"
    return urlunsplit((parts.scheme, parts.netloc, path, query, ""))
