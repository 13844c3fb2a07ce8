"""Presentation-layer dependency injection.

The TaskService is built once in the lifespan and held on app.state; routes
receive it through get_task_service and never construct adapters themselves.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import Depends, HTTPException, Request

from muskoka.application.use_cases.tasks import TaskService
from muskoka.shared.utils.datetime import utc_now


def get_task_service(request: Request) -> TaskService:
    """Return the application's TaskService; 503 until startup has completed."""
    service = getattr(request.app.state, "task_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Service is starting up")
    return service


def get_now() -> datetime:
    """Current time for cache decisions (overridable in tests)."""
    return utc_now()


TaskServiceDep = Annotated[TaskService, Depends(get_task_service)]
NowDep = Annotated[datetime, Depends(get_now)]
