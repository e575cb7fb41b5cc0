"""
Where: services/lamux/middleware.py
What: HTTP middleware for per-request log context and access logging.
Why: Emit exactly one structured record per request, whatever the outcome.
"""

import asyncio
import logging
import time
from typing import Any, Dict

from fastapi import Request

from services.common.core.request_context import (
    clear_log_fields,
    get_log_fields,
    set_request_id,
    start_log_context,
)

logger = logging.getLogger("lamux.access")

# Upstream correlation headers, logged only when present.
_CORRELATION_HEADERS = {
    "x-amzn-trace-id": "x_amzn_trace_id",
    "x-amz-cf-id": "x_amz_cf_id",
}


def request_log_fields(request: Request) -> Dict[str, Any]:
    """Collect the request attributes every access record carries."""
    client = request.client
    url = request.url.path
    if request.url.query:
        url = f"{url}?{request.url.query}"
    fields: Dict[str, Any] = {
        "remote": f"{client.host}:{client.port}" if client else "",
        "method": request.method,
        "url": url,
        "host": request.headers.get("host", ""),
        "ua": request.headers.get("user-agent", ""),
        "referer": request.headers.get("referer", ""),
        "x_forwarded_for": request.headers.get("x-forwarded-for", ""),
        "x_forwarded_host": request.headers.get("x-forwarded-host", ""),
    }
    for header, key in _CORRELATION_HEADERS.items():
        value = request.headers.get(header)
        if value:
            fields[key] = value
    return fields


def _access_log(
    level: int, message: str, start_time: float, exc_info: bool = False, **fields: Any
) -> None:
    extra = get_log_fields()
    extra.update(fields)
    extra["duration"] = time.perf_counter() - start_time
    logger.log(level, message, extra=extra, exc_info=exc_info)


async def request_logging_middleware(request: Request, call_next):
    """
    Middleware for request log context and structured access logging.
    """
    start_time = time.perf_counter()

    start_log_context(**request_log_fields(request))
    request_id = request.headers.get("x-amzn-requestid")
    if request_id:
        set_request_id(request_id)

    try:
        try:
            response = await call_next(request)
        except asyncio.CancelledError:
            _access_log(
                logging.ERROR,
                "request",
                start_time,
                status=504,
                error="upstream timeout: request canceled",
            )
            raise
        except Exception as exc:
            _access_log(
                logging.ERROR,
                "request",
                start_time,
                exc_info=True,
                status=500,
                error=str(exc),
            )
            raise

        if "error" in get_log_fields():
            _access_log(logging.ERROR, "request", start_time, status=response.status_code)
        else:
            _access_log(logging.INFO, "response", start_time, status=response.status_code)
        return response
    finally:
        # Cleanup.
        clear_log_fields()
