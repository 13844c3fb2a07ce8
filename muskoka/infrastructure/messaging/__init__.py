"""Messaging: task-ready notifications on Redis streams."""

from muskoka.infrastructure.messaging.redis_streams import TaskEventPublisher

__all__ = ["TaskEventPublisher"]
