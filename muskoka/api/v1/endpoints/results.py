"""Result ingestion: POST /results."""

from fastapi import APIRouter, Request

from muskoka.api.v1.dependencies import TaskServiceDep
from muskoka.core.limiter import limit_results
from muskoka.schemas.task import ResultSubmitRequest, ResultSubmitResponse

router = APIRouter()


@router.post("", response_model=ResultSubmitResponse, status_code=201)
@limit_results
async def submit_result(
    request: Request,
    body: ResultSubmitRequest,
    service: TaskServiceDep,
) -> ResultSubmitResponse:
    """Store a worker's result for a task; returns the new result key."""
    result_key = await service.submit_result(body.key, body.to_submission())
    return ResultSubmitResponse(key=body.key, result_key=result_key)
