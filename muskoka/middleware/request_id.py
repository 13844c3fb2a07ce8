"""Request id and access log (raw ASGI).

Each HTTP request gets an id: the client's X-Request-ID when it is a short
token of letters, digits, hyphens and underscores, otherwise a fresh UUID.
The id is echoed on the response and ends the single access-log line written
per request, so upload, listing and result traffic can be correlated with
store warnings.
"""

import logging
import re
import time
import uuid
from typing import Callable

logger = logging.getLogger("muskoka.request")

_SAFE_REQUEST_ID = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def _request_id(scope: dict, header_name: str) -> str:
    """Forwarded id if it is safe to log, else a new one."""
    wanted = header_name.lower().encode()
    for key, value in scope.get("headers", []):
        if key.lower() == wanted:
            candidate = value.decode("latin-1").strip()
            if _SAFE_REQUEST_ID.match(candidate):
                return candidate
            break
    return uuid.uuid4().hex


def RequestIDMiddleware(app: Callable, header_name: str = "X-Request-ID") -> Callable:
    """Add or forward X-Request-ID on each request and response, and log the request. Raw ASGI."""

    async def asgi_app(scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await app(scope, receive, send)
            return
        request_id = _request_id(scope, header_name)
        scope.setdefault("state", {})["request_id"] = request_id
        status_code = 500
        started = time.perf_counter()

        async def send_wrapper(message: dict) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                headers = list(message.get("headers", []))
                headers.append((header_name.encode(), request_id.encode()))
                message["headers"] = headers
            await send(message)

        try:
            await app(scope, receive, send_wrapper)
        finally:
            logger.info(
                "%s %s %s %.1fms request_id=%s",
                scope.get("method", ""),
                scope.get("path", ""),
                status_code,
                (time.perf_counter() - started) * 1000,
                request_id,
            )

    return asgi_app
