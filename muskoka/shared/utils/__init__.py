"""Shared utilities: datetime, generators, deadlines."""

from muskoka.shared.utils.datetime import ensure_utc, utc_now
from muskoka.shared.utils.deadline import with_deadline
from muskoka.shared.utils.generators import generate_cuid, generate_result_key

__all__ = [
    "ensure_utc",
    "generate_cuid",
    "generate_result_key",
    "utc_now",
    "with_deadline",
]
