"""Task upload: POST /upload (multipart: one pre-state, one or more blocks)."""

from fastapi import APIRouter, File, Form, Header, Request, UploadFile

from muskoka.api.v1.dependencies import TaskServiceDep
from muskoka.core.config import get_settings
from muskoka.core.limiter import limit_upload
from muskoka.domain.exceptions import ValidationException
from muskoka.schemas.task import UploadResponse

router = APIRouter()


async def _read_limited(file: UploadFile, field: str, max_bytes: int) -> bytes:
    content = await file.read(max_bytes + 1)
    if len(content) > max_bytes:
        raise ValidationException(f"{field} file is too large", field=field)
    return content


@router.post("", response_model=UploadResponse, status_code=201)
@limit_upload
async def upload_task(
    request: Request,
    service: TaskServiceDep,
    pre: list[UploadFile] | None = File(None),
    blocks: list[UploadFile] | None = File(None),
    spec_version_form: str | None = Form(None, alias="spec-version"),
    spec_config_form: str | None = Form(None, alias="spec-config"),
    spec_version_header: str | None = Header(None, alias="spec-version"),
    spec_config_header: str | None = Header(None, alias="spec-config"),
) -> UploadResponse:
    """Create a task from a pre-state and blocks, store the artifacts and notify workers.

    spec-version and spec-config may be sent as headers or as form fields.
    """
    spec_version = spec_version_header or spec_version_form
    spec_config = spec_config_header or spec_config_form
    if not spec_version:
        raise ValidationException("missing spec-version", field="spec-version")
    if not spec_config:
        raise ValidationException("missing spec-config", field="spec-config")
    if not pre or len(pre) != 1:
        raise ValidationException("expected exactly one pre-state file", field="pre")
    if not blocks:
        raise ValidationException("expected at least one block", field="blocks")
    if len(blocks) > service.max_blocks:
        raise ValidationException(
            f"too many blocks, maximum is {service.max_blocks}", field="blocks"
        )

    max_bytes = get_settings().max_upload_size
    pre_state = await _read_limited(pre[0], "pre", max_bytes)
    block_contents = [await _read_limited(b, "blocks", max_bytes) for b in blocks]

    created = await service.create_task(spec_version, spec_config, pre_state, block_contents)
    return UploadResponse(
        key=created.task.key,
        index=created.task.index,
        published=created.published,
    )
