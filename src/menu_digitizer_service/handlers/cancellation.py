"""Cancel in-flight work when the HTTP client goes away."""

import asyncio
import contextlib
import logging
from collections.abc import Coroutine
from typing import Any, TypeVar

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Non-standard status used by nginx for "client closed request"
CLIENT_CLOSED_REQUEST = 499
DISCONNECT_POLL_SECONDS = 0.5


async def run_unless_disconnected(
    request: Request,
    work: Coroutine[Any, Any, T],
    poll_interval: float = DISCONNECT_POLL_SECONDS,
) -> T:
    """Await `work`, cancelling it if the client disconnects first.

    Args:
        request: Incoming request whose connection is watched
        work: Coroutine to run as a task
        poll_interval: Seconds between disconnect checks

    Returns:
        The result of `work`

    Raises:
        HTTPException: 499 if the client disconnected before completion
    """
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll_interval)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.info(f"Client disconnected from {request.url.path}, cancelling work")
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
                raise HTTPException(
                    status_code=CLIENT_CLOSED_REQUEST, detail="Client closed request"
                )
    finally:
        if not task.done():
            task.cancel()
