"""Task lookup: GET /task/{key} and GET /task?key=..."""

from fastapi import APIRouter, Query, Response

from muskoka.api.v1.dependencies import NowDep, TaskServiceDep
from muskoka.application.services.cache_advisor import cache_directive_for
from muskoka.domain.exceptions import ValidationException
from muskoka.schemas.task import TaskResponse

router = APIRouter()


async def _lookup(service: TaskServiceDep, key: str, response: Response, now) -> TaskResponse:
    task = await service.get_task(key)
    response.headers["Cache-Control"] = cache_directive_for([task.created], now).value
    return TaskResponse.from_dto(task)


@router.get("", response_model=TaskResponse)
async def get_task_by_query(
    service: TaskServiceDep,
    response: Response,
    now: NowDep,
    key: str | None = Query(None),
) -> TaskResponse:
    """Look up a task by the key query parameter."""
    if not key:
        raise ValidationException("missing task key", field="key")
    return await _lookup(service, key, response, now)


@router.get("/{key}", response_model=TaskResponse)
async def get_task(
    key: str,
    service: TaskServiceDep,
    response: Response,
    now: NowDep,
) -> TaskResponse:
    """Look up a task by key, with its results."""
    return await _lookup(service, key, response, now)
