"""DTOs for task listings."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from muskoka.application.dtos.task import Task


class PageDirection(str, Enum):
    """Direction of an adjacent page relative to the current one."""

    NEXT = "next"  # older tasks, lower indices
    PREV = "prev"  # newer tasks, higher indices


@dataclass(frozen=True)
class ClientFilter:
    """Client predicate: version None means "has submitted any version"."""

    name: str
    version: str | None = None


@dataclass(frozen=True)
class ListingFilter:
    """Equality predicates applied to a listing (None = not filtered)."""

    spec_version: str | None = None
    spec_config: str | None = None
    has_fail: bool | None = None
    clients: tuple[ClientFilter, ...] = ()


@dataclass(frozen=True)
class ListingPage:
    """One page of tasks, latest first, with the total number of tasks ever created."""

    tasks: list[Task]
    total_count: int
    has_next_page: bool = False
    has_prev_page: bool = False
