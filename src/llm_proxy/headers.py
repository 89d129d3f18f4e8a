"""Header rewriting for both legs of a forwarded request."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from multidict import CIMultiDict

from llm_proxy.config import ProxyConfig
from llm_proxy.routing import ANTHROPIC_PREFIX, OPENAI_PREFIX, Upstream

# Never forwarded in either direction. Length and framing are recomputed by
# aiohttp for each leg; authorization carries the proxy token inbound.
HOP_HEADERS = frozenset(
    {
        "host",
        "content-length",
        "connection",
        "transfer-encoding",
        "authorization",
    }
)

ANTHROPIC_VERSION_HEADER = "anthropic-version"


def filter_headers(
    headers: Iterable[tuple[str, str]] | Mapping[str, str],
    extra: Mapping[str, str] | None = None,
) -> CIMultiDict[str]:
    """Copy headers minus hop headers, then apply ``extra``.

    Keys are compared case-insensitively but keep their original casing.
    Repeated headers stay as separate entries. Each ``extra`` entry replaces
    every existing value under the same name.

    Args:
        headers: Source headers (a multidict, mapping or sequence of pairs).
        extra: Headers to set after filtering.

    Returns:
        New case-insensitive multidict.
    """
    items = headers.items() if isinstance(headers, Mapping) else headers

    out: CIMultiDict[str] = CIMultiDict()
    for key, value in items:
        if key.lower() in HOP_HEADERS:
            continue
        out.add(key, value)

    if extra:
        for key, value in extra.items():
            out[key] = value
    return out


def credential_headers(
    upstream: Upstream,
    config: ProxyConfig,
    inbound: Mapping[str, str],
) -> dict[str, str]:
    """Return the vendor headers to inject for ``upstream``."""
    if upstream.prefix == OPENAI_PREFIX:
        return {"Authorization": f"Bearer {upstream.api_key}"}

    if upstream.prefix == ANTHROPIC_PREFIX:
        extra = {"x-api-key": upstream.api_key}
        if config.anthropic_version and ANTHROPIC_VERSION_HEADER not in inbound:
            extra[ANTHROPIC_VERSION_HEADER] = config.anthropic_version
        return extra

    raise ValueError(f"Unknown upstream prefix: {upstream.prefix}")


def outbound_headers(
    upstream: Upstream,
    config: ProxyConfig,
    inbound: Mapping[str, str],
) -> CIMultiDict[str]:
    """Filtered inbound headers with vendor credentials applied."""
    return filter_headers(inbound, credential_headers(upstream, config, inbound))
