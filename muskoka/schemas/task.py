"""Task, result and listing API schemas.

Wire names are hyphenated (spec-version, post-hash, ...), as workers and the
dashboard expect; Python attribute names are snake_case with aliases.
"""

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field

from muskoka.application.dtos.listing import ListingPage
from muskoka.application.dtos.task import ResultEntry, ResultFiles, ResultSubmission, Task


class _HyphenatedModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ResultFilesSchema(_HyphenatedModel):
    """Artifact references stored with a result (not interpreted)."""

    post_state: str = Field(default="", alias="post-state", max_length=1024)
    err_log: str = Field(default="", alias="err-log", max_length=1024)
    out_log: str = Field(default="", alias="out-log", max_length=1024)

    @classmethod
    def from_dto(cls, files: ResultFiles) -> "ResultFilesSchema":
        return cls(post_state=files.post_state, err_log=files.err_log, out_log=files.out_log)


class ResultEntryResponse(_HyphenatedModel):
    success: bool
    created: AwareDatetime
    client_name: str = Field(..., alias="client-name")
    client_version: str = Field(..., alias="client-version")
    post_hash: str = Field(..., alias="post-hash")
    files: ResultFilesSchema

    @classmethod
    def from_dto(cls, entry: ResultEntry) -> "ResultEntryResponse":
        return cls(
            success=entry.success,
            created=entry.created,
            client_name=entry.client_name,
            client_version=entry.client_version,
            post_hash=entry.post_hash,
            files=ResultFilesSchema.from_dto(entry.files),
        )


class TaskResponse(_HyphenatedModel):
    """Task detail (lookup) and listing item shape."""

    key: str
    index: int
    blocks: int
    spec_version: str = Field(..., alias="spec-version")
    spec_config: str = Field(..., alias="spec-config")
    created: AwareDatetime
    results: dict[str, ResultEntryResponse] = Field(default_factory=dict)

    @classmethod
    def from_dto(cls, task: Task) -> "TaskResponse":
        return cls(
            key=task.key,
            index=task.index,
            blocks=task.blocks,
            spec_version=task.spec_version,
            spec_config=task.spec_config,
            created=task.created,
            results={k: ResultEntryResponse.from_dto(v) for k, v in task.results.items()},
        )


class ListingResponse(_HyphenatedModel):
    tasks: list[TaskResponse]
    total_task_count: int = Field(..., alias="total-task-count")
    has_next_page: bool = Field(..., alias="has-next-page")
    has_prev_page: bool = Field(..., alias="has-prev-page")

    @classmethod
    def from_dto(cls, page: ListingPage) -> "ListingResponse":
        return cls(
            tasks=[TaskResponse.from_dto(t) for t in page.tasks],
            total_task_count=page.total_count,
            has_next_page=page.has_next_page,
            has_prev_page=page.has_prev_page,
        )


class ResultSubmitRequest(_HyphenatedModel):
    """Worker result message. Formats are checked by the result merger."""

    success: bool
    post_hash: str = Field(..., alias="post-hash")
    client_name: str = Field(..., alias="client-name")
    client_version: str = Field(..., alias="client-version")
    key: str
    files: ResultFilesSchema = Field(default_factory=ResultFilesSchema)

    def to_submission(self) -> ResultSubmission:
        return ResultSubmission(
            success=self.success,
            post_hash=self.post_hash,
            client_name=self.client_name,
            client_version=self.client_version,
            files=ResultFiles(
                post_state=self.files.post_state,
                err_log=self.files.err_log,
                out_log=self.files.out_log,
            ),
        )


class ResultSubmitResponse(_HyphenatedModel):
    key: str
    result_key: str = Field(..., alias="result-key")


class UploadResponse(_HyphenatedModel):
    """Response for POST /upload."""

    key: str
    index: int
    published: bool


__all__ = [
    "ListingResponse",
    "ResultEntryResponse",
    "ResultFilesSchema",
    "ResultSubmitRequest",
    "ResultSubmitResponse",
    "TaskResponse",
    "UploadResponse",
]
