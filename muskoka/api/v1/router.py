"""API v1 router aggregation.

Includes all endpoint modules with consistent prefix and tags. All routes
receive the TaskService through muskoka.api.v1.dependencies.
"""

from fastapi import APIRouter

from muskoka.api.v1.endpoints import health, listing, results, tasks, upload

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(upload.router, prefix="/upload", tags=["tasks"])
api_router.include_router(tasks.router, prefix="/task", tags=["tasks"])
api_router.include_router(listing.router, prefix="/listing", tags=["tasks"])
api_router.include_router(results.router, prefix="/results", tags=["results"])
