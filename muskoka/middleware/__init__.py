"""Raw ASGI middleware: request id / request log and request timeout."""

from muskoka.middleware.request_id import RequestIDMiddleware
from muskoka.middleware.timeout import TimeoutMiddleware

__all__ = ["RequestIDMiddleware", "TimeoutMiddleware"]
