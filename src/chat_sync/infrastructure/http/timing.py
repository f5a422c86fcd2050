"""Request timing hooks for the snapshot HTTP client."""
from __future__ import annotations

import logging
import time
from typing import Any, Awaitable, Callable

import httpx

logger = logging.getLogger(__name__)

_START = "chat_sync.started_at"


async def _mark_start(request: httpx.Request) -> None:
    request.extensions[_START] = time.perf_counter()


async def _log_timing(response: httpx.Response) -> None:
    request = response.request
    started = request.extensions.get(_START)
    elapsed_ms = (time.perf_counter() - started) * 1000 if started is not None else 0.0
    logger.info(
        "%s %s %s %.1fms",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )


def timing_hooks() -> dict[str, list[Callable[[Any], Awaitable[None]]]]:
    return {"request": [_mark_start], "response": [_log_timing]}
