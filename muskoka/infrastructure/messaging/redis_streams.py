"""Redis streams for task-ready notifications.

One stream per (spec version, spec config), so worker pools subscribe only to
the configurations they can run. Entries stay in the stream until trimmed;
consumer groups give at-least-once delivery, so consumers must be idempotent.
"""

from __future__ import annotations

import asyncio
import json
import logging

import redis.asyncio as redis

from muskoka.application.dtos.task import TaskReadyEvent
from muskoka.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


class _RedisStreamBase:
    """Shared Redis connection and stream naming."""

    STREAM_PREFIX = "transition"

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize. Pass redis_client for DI/testing."""
        self.redis = redis_client
        self.settings = settings or get_settings()
        self._connected = redis_client is not None

    async def connect(self) -> None:
        """Establish Redis connection. Call on app startup."""
        if self._connected:
            return
        if self.redis is None:
            try:
                self.redis = redis.Redis(
                    host=self.settings.redis_host,
                    port=self.settings.redis_port,
                    db=self.settings.redis_db,
                    password=self.settings.redis_password.get_secret_value() if self.settings.redis_password else None,
                    decode_responses=True,
                    socket_connect_timeout=5,
                    socket_timeout=self.settings.task_stream_timeout_seconds,
                )
                await self.redis.ping()
                self._connected = True
                logger.info("Redis task stream connected")
            except (redis.ConnectionError, redis.TimeoutError) as e:
                logger.warning("Redis task stream connection failed: %s", e)
                self._connected = False
                self.redis = None

    async def disconnect(self) -> None:
        """Close Redis connection. Call on app shutdown."""
        if self.redis:
            await self.redis.aclose()
            self._connected = False
            logger.info("Redis task stream disconnected")

    def is_available(self) -> bool:
        """Return True if Redis is connected."""
        return self._connected and self.redis is not None

    def stream_name(self, spec_version: str, spec_config: str) -> str:
        """Stream for one spec version and config."""
        return f"{self.STREAM_PREFIX}:{spec_version}:{spec_config}"


class TaskEventPublisher(_RedisStreamBase):
    """Appends task-ready events to the per-configuration stream."""

    async def publish_task_ready(self, event: TaskReadyEvent) -> bool:
        """Append the event.

        Returns:
            True if published, False if Redis is unavailable or the write failed.
        """
        if not self.is_available() or self.redis is None:
            logger.debug("Redis not available, skipping task-ready publish for %s", event.key)
            return False
        stream = self.stream_name(event.spec_version, event.spec_config)
        try:
            entry_id = await asyncio.wait_for(
                self.redis.xadd(
                    stream,
                    {"payload": json.dumps(event.to_dict())},
                    maxlen=self.settings.task_stream_maxlen,
                    approximate=True,
                ),
                timeout=self.settings.task_stream_timeout_seconds,
            )
            logger.debug("Published task %s to %s as %s", event.key, stream, entry_id)
        except asyncio.TimeoutError:
            logger.warning(
                "Task-ready publish for %s to %s timed out after %ss",
                event.key,
                stream,
                self.settings.task_stream_timeout_seconds,
            )
            return False
        except Exception:
            logger.exception("Failed to publish task-ready event for %s", event.key)
            return False
        else:
            return True
