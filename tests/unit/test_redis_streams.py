"""Tests for task-ready publishing on Redis streams (Redis client mocked)."""

import asyncio
import json
from unittest.mock import AsyncMock

from muskoka.application.dtos.task import TaskReadyEvent
from muskoka.core.config import Settings
from muskoka.infrastructure.messaging import TaskEventPublisher

EVENT = TaskReadyEvent(key="abc", index=7, blocks=2, spec_version="v1.0", spec_config="mainnet")


def _publisher(redis_client=None) -> TaskEventPublisher:
    return TaskEventPublisher(redis_client=redis_client, settings=Settings(task_stream_maxlen=500))


async def test_publish_appends_to_config_stream() -> None:
    """Event goes to transition:{version}:{config} as a JSON payload, trimmed approximately."""
    redis_client = AsyncMock()
    redis_client.xadd.return_value = "1-0"
    publisher = _publisher(redis_client)

    assert publisher.is_available()
    assert await publisher.publish_task_ready(EVENT) is True

    redis_client.xadd.assert_awaited_once()
    args, kwargs = redis_client.xadd.call_args
    assert args[0] == "transition:v1.0:mainnet"
    assert json.loads(args[1]["payload"]) == EVENT.to_dict()
    assert kwargs == {"maxlen": 500, "approximate": True}


async def test_publish_without_connection_returns_false() -> None:
    publisher = _publisher()
    assert not publisher.is_available()
    assert await publisher.publish_task_ready(EVENT) is False


async def test_publish_failure_is_reported_not_raised() -> None:
    redis_client = AsyncMock()
    redis_client.xadd.side_effect = ConnectionError("gone")
    assert await _publisher(redis_client).publish_task_ready(EVENT) is False


async def test_disconnect_closes_client() -> None:
    redis_client = AsyncMock()
    publisher = _publisher(redis_client)
    await publisher.disconnect()
    redis_client.aclose.assert_awaited_once()
    assert not publisher.is_available()


async def test_stalled_redis_returns_false_within_deadline() -> None:
    """A hanging XADD is abandoned after the stream timeout instead of blocking the upload."""

    async def _hang(*args, **kwargs):
        await asyncio.sleep(60)

    redis_client = AsyncMock()
    redis_client.xadd.side_effect = _hang
    publisher = TaskEventPublisher(
        redis_client=redis_client, settings=Settings(task_stream_timeout_seconds=0.05)
    )
    assert await asyncio.wait_for(publisher.publish_task_ready(EVENT), timeout=2) is False
