"""Rate limiter instance for SlowAPI.

Shared so both main (app.state.limiter) and route modules can use the same
instance without circular imports. Limits apply per client address to the
write endpoints; reads are cacheable and left unlimited.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from muskoka.core.config import get_settings

limiter = Limiter(key_func=get_remote_address, enabled=get_settings().rate_limit_enabled)

# Single source of truth for rate limit strings and decorators.
UPLOAD_LIMIT = "30/minute"
RESULTS_LIMIT = "600/minute"

limit_upload = limiter.limit(UPLOAD_LIMIT)
limit_results = limiter.limit(RESULTS_LIMIT)
