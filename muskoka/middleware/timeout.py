"""Request deadline middleware (raw ASGI).

Store calls carry their own deadlines; this is the outer bound for a whole
request, including artifact uploads. A request still running after
timeout_seconds is cancelled and answered with 504, unless the response
has already started.
"""

import asyncio
import json
import logging
from typing import Callable

logger = logging.getLogger(__name__)


class TimeoutMiddleware:
    """Cancel HTTP requests that exceed timeout_seconds."""

    def __init__(self, app: Callable, timeout_seconds: int) -> None:
        self.app = app
        self.timeout_seconds = timeout_seconds

    def _body(self) -> bytes:
        return json.dumps(
            {
                "error": "GATEWAY_TIMEOUT",
                "message": "Request did not complete in time",
                "details": {"timeout_seconds": self.timeout_seconds},
            }
        ).encode()

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started = False

        async def tracking_send(message: dict) -> None:
            nonlocal started
            if message["type"] == "http.response.start":
                started = True
            await send(message)

        try:
            await asyncio.wait_for(
                self.app(scope, receive, tracking_send), timeout=float(self.timeout_seconds)
            )
        except asyncio.TimeoutError:
            logger.warning(
                "%s %s cancelled after %ss",
                scope.get("method", ""),
                scope.get("path", ""),
                self.timeout_seconds,
            )
            if started:
                return
            await send(
                {
                    "type": "http.response.start",
                    "status": 504,
                    "headers": [(b"content-type", b"application/json")],
                }
            )
            await send({"type": "http.response.body", "body": self._body()})
