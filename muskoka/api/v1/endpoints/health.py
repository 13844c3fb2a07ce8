"""Health check endpoints: liveness without dependencies, readiness against the document store."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from muskoka.api.v1.dependencies import TaskServiceDep
from muskoka.domain.exceptions import StoreException
from muskoka.schemas.health import (
    HealthResponse,
    ReadinessErrorResponse,
    ReadinessResponse,
)
from muskoka.shared.utils.deadline import with_deadline

logger = logging.getLogger(__name__)

router = APIRouter()

READINESS_TIMEOUT_SECONDS = 5.0


@router.get("", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Return simple ok status for liveness."""
    return HealthResponse()


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={503: {"description": "Document store unreachable", "model": ReadinessErrorResponse}},
)
async def readiness_check(service: TaskServiceDep) -> ReadinessResponse | JSONResponse:
    """Return 200 if the task counter can be read; 503 otherwise."""
    try:
        count = await with_deadline(
            service.allocator.read_count(), READINESS_TIMEOUT_SECONDS, "readiness"
        )
    except StoreException as e:
        logger.warning("Readiness check failed: %s", e.message)
        return JSONResponse(
            status_code=503,
            content=ReadinessErrorResponse(message="Document store unreachable").model_dump(),
        )
    publisher = service.publisher
    return ReadinessResponse(
        task_count=count,
        notifications=bool(publisher is not None and publisher.is_available()),
    )
