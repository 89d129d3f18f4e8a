"""Error types and fixed error responses for the proxy."""

from __future__ import annotations

import functools
import json

from aiohttp import web

# Compact separators so bodies read {"error":"unauthorized"}
_dumps = functools.partial(json.dumps, separators=(",", ":"))


class ConfigError(Exception):
    """Raised when the process configuration is missing or malformed."""


def unauthorized() -> web.Response:
    """401 for a missing or wrong proxy token."""
    return web.json_response({"error": "unauthorized"}, status=401, dumps=_dumps)


def not_found() -> web.Response:
    """404 for paths outside the known upstream prefixes."""
    return web.Response(text="not found", status=404)


def bad_gateway() -> web.Response:
    """502 for any transport failure reaching the upstream."""
    return web.json_response({"error": "bad_gateway"}, status=502, dumps=_dumps)
