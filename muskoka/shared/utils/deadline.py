"""Deadlines for calls into external collaborators."""

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

from muskoka.domain.exceptions import TransientStoreException

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_deadline(
    awaitable: Awaitable[T],
    seconds: float,
    operation: str,
    service: str = "Document store",
) -> T:
    """Await with a timeout; expiry becomes TransientStoreException (retryable by the caller).

    Args:
        awaitable: Store or artifact storage call to run.
        seconds: Deadline in seconds.
        operation: Short name used in the log line (e.g. 'create task').
        service: Collaborator named in the client-facing message.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError:
        logger.warning("%s call timed out after %ss: %s", service, seconds, operation)
        raise TransientStoreException(
            f"{service} did not answer within {seconds:g} seconds"
        ) from None
