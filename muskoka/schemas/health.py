"""Health check API schemas."""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response for GET /health (liveness)."""

    status: str = Field(default="ok", description="Service status")


class ReadinessResponse(BaseModel):
    """Response for GET /health/ready when ready."""

    status: str = Field(default="ok", description="Readiness status")
    task_count: int = Field(..., description="Tasks created so far")
    notifications: bool = Field(..., description="Task-ready stream connected")


class ReadinessErrorResponse(BaseModel):
    """Response for GET /health/ready when the document store is unreachable (503)."""

    status: str = Field(default="not_ready", description="Readiness status")
    message: str = Field(..., description="Reason")
