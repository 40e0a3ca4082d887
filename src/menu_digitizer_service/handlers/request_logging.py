"""ASGI middleware that logs every HTTP request with its outcome."""

import logging
from time import perf_counter

from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware:
    """Logs method, path and query on arrival, then status and duration on completion.

    Written as plain ASGI so it does not buffer bodies or interfere with
    disconnect detection in the route handlers.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        method = scope["method"]
        path = scope["path"]
        query = scope.get("query_string", b"").decode("latin-1")
        logger.info(f"Request {method} {path}" + (f"?{query}" if query else ""))

        status_code = 500
        started_at = perf_counter()

        async def send_with_status(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_with_status)
        finally:
            duration_ms = (perf_counter() - started_at) * 1000
            logger.info(
                f"Response {method} {path} completed with status {status_code} "
                f"in {duration_ms:.0f}ms"
            )
