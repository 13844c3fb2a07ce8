"""Task listing: GET /listing.

Query parameters: limit, after, before (task indices), has-fail, spec-version,
spec-config and any number of client-<name>=<version|all>.
"""

from fastapi import APIRouter, Request, Response

from muskoka.api.v1.dependencies import NowDep, TaskServiceDep
from muskoka.application.dtos.listing import ClientFilter, ListingFilter
from muskoka.application.services.cache_advisor import listing_cache_directive
from muskoka.domain.exceptions import ValidationException
from muskoka.schemas.task import ListingResponse

router = APIRouter()

CLIENT_PARAM_PREFIX = "client-"
ANY_CLIENT_VERSION = "all"
MAX_INDEX = 2**63 - 1


def _parse_index(raw: str | None, field: str) -> int | None:
    if raw is None or raw == "":
        return None
    if not (raw.isascii() and raw.isdigit()):
        raise ValidationException(f"invalid {field}-index", field=field)
    value = int(raw)
    if value > MAX_INDEX:
        raise ValidationException(f"invalid {field}-index", field=field)
    return value


def _parse_bool(raw: str | None, field: str) -> bool | None:
    if raw is None or raw == "":
        return None
    lowered = raw.lower()
    if lowered in ("true", "1"):
        return True
    if lowered in ("false", "0"):
        return False
    raise ValidationException(f"invalid {field} value", field=field)


def parse_listing_filter(request: Request) -> ListingFilter:
    """Build the ListingFilter from the query string (values are validated by the listing)."""
    params = request.query_params
    clients = tuple(
        ClientFilter(
            name=name[len(CLIENT_PARAM_PREFIX):],
            version=None if value == ANY_CLIENT_VERSION else value,
        )
        for name, value in params.multi_items()
        if name.startswith(CLIENT_PARAM_PREFIX)
    )
    return ListingFilter(
        spec_version=params.get("spec-version") or None,
        spec_config=params.get("spec-config") or None,
        has_fail=_parse_bool(params.get("has-fail"), "has-fail"),
        clients=clients,
    )


@router.get("", response_model=ListingResponse)
async def list_tasks(
    request: Request,
    response: Response,
    service: TaskServiceDep,
    now: NowDep,
) -> ListingResponse:
    """Latest-first page of tasks with total count and paging flags."""
    params = request.query_params
    page = await service.list_tasks(
        parse_listing_filter(request),
        after=_parse_index(params.get("after"), "after"),
        before=_parse_index(params.get("before"), "before"),
        limit=_parse_index(params.get("limit"), "limit"),
    )
    response.headers["Cache-Control"] = listing_cache_directive(
        page, now, head_window=service.listing.max_limit
    ).value
    return ListingResponse.from_dto(page)
