"""DTOs for tasks and worker results (no dependency on the store)."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class ResultFiles:
    """References to artifacts a worker stored for one result (not interpreted)."""

    post_state: str = ""
    err_log: str = ""
    out_log: str = ""


@dataclass(frozen=True)
class ResultSubmission:
    """A worker's reported outcome, before it is keyed and timestamped."""

    success: bool
    post_hash: str
    client_name: str
    client_version: str
    files: ResultFiles = field(default_factory=ResultFiles)


@dataclass(frozen=True)
class ResultEntry:
    """One stored result of a task."""

    success: bool
    created: datetime
    client_name: str
    client_version: str
    post_hash: str
    files: ResultFiles = field(default_factory=ResultFiles)


@dataclass(frozen=True)
class TaskHeader:
    """Immutable part of a task, supplied by the producer."""

    spec_version: str
    spec_config: str
    blocks: int


@dataclass(frozen=True)
class Task:
    """Task read-model: immutable header, assigned index and the result ledger.

    workers / workers_versioned are None when the read did not project them
    (listings never do).
    """

    key: str
    index: int
    blocks: int
    spec_version: str
    spec_config: str
    created: datetime
    results: dict[str, ResultEntry] = field(default_factory=dict)
    has_fail: bool = False
    workers: frozenset[str] | None = None
    workers_versioned: dict[str, str] | None = None


@dataclass(frozen=True)
class TaskCreationResult:
    """Result of an upload: the new task and whether workers were notified."""

    task: Task
    published: bool


@dataclass(frozen=True)
class TaskReadyEvent:
    """Notification that a task's inputs are stored and it can be executed."""

    key: str
    index: int
    blocks: int
    spec_version: str
    spec_config: str

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON publish (hyphenated names, as workers expect)."""
        data = asdict(self)
        data["spec-version"] = data.pop("spec_version")
        data["spec-config"] = data.pop("spec_config")
        return data
