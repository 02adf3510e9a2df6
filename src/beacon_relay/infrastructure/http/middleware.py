from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any
from uuid import uuid4

from fastapi import Request

logger = logging.getLogger("beacon_relay.http")


async def request_logging_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Any]],
) -> Any:
    request_id = request.headers.get("x-request-id", uuid4().hex)
    request_line = _format_request_line(request)
    logger.debug(
        "request_received",
        extra={
            "data": {
                "request_id": request_id,
                "request_line": request_line,
                "method": request.method,
                "path": request.url.path,
            },
        },
    )

    start = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        logger.exception(
            "request_failed",
            extra={
                "data": {
                    "request_id": request_id,
                    "request_line": request_line,
                    "method": request.method,
                    "path": request.url.path,
                },
            },
        )
        raise

    logger.info(
        "request_completed",
        extra={
            "data": {
                "request_id": request_id,
                "request_line": request_line,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        },
    )
    return response


def _format_request_line(request: Request, limit: int = 512) -> str:
    query = request.url.query
    line = f"{request.method} {request.url.path}?{query}" if query else f"{request.method} {request.url.path}"
    if len(line) <= limit:
        return line
    return line[:limit] + "... (truncated)"
