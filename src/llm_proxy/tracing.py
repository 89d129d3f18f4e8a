"""Per-request trace ids for log correlation.

Trace ids only appear in log lines; they are never added to forwarded
headers. Request and response payloads are never logged.
"""

from __future__ import annotations

import itertools
import logging
import time

logger = logging.getLogger(__name__)


class RequestTracer:
    """Hands out human-readable trace ids and logs request outcomes.

    Example:
        tracer = RequestTracer()
        trace_id = tracer.generate_trace_id("openai")   # 00001_031333_openai
    """

    def __init__(self) -> None:
        self._counter = itertools.count(1)

    def generate_trace_id(self, route: str) -> str:
        """Format: {counter}_{hhmmss}_{route}"""
        timestamp = time.strftime("%H%M%S")
        return f"{next(self._counter):05d}_{timestamp}_{route or 'request'}"

    def log_request(self, trace_id: str, method: str, path: str, upstream_url: str) -> None:
        logger.debug(
            "[%s] request_start: method=%s, path=%s -> %s",
            trace_id,
            method,
            path,
            upstream_url,
        )

    def log_response(
        self,
        trace_id: str,
        status_code: int,
        duration_s: float,
        response_size: int = 0,
        error: str | None = None,
    ) -> None:
        """Log a completed or failed forward.

        Args:
            trace_id: Trace ID for this request.
            status_code: Status returned to the caller.
            duration_s: Time from request start to last byte relayed.
            response_size: Bytes relayed to the caller.
            error: Short failure description, if the forward failed.
        """
        if error:
            logger.warning(
                "[%s] request_failed: status=%d, error=%s (%.2fs)",
                trace_id,
                status_code,
                error[:100],
                duration_s,
            )
        else:
            logger.info(
                "[%s] request_complete: status=%d, size=%d (%.2fs)",
                trace_id,
                status_code,
                response_size,
                duration_s,
            )
