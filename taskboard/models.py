"""Data models for the Taskboard project and task service.

This module defines the core records (Projects and Tasks), the closed
enumerations for task status, priority and sort options, and the structured
inputs used by the listing and update operations.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from taskboard.utils.serialization import to_dict, from_dict


def utc_now() -> str:
    """Current UTC time as an ISO-8601 string with fixed microsecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def new_id() -> str:
    return str(uuid.uuid4())


def later_of(timestamp: str, floor: str) -> str:
    """Return ``timestamp`` unless it is earlier than ``floor``.

    Keeps ``updated_at`` non-decreasing when the wall clock steps backwards.
    """
    return timestamp if timestamp >= floor else floor


def _check_fields(data: Dict[str, Any], required: tuple, optional: tuple = ()) -> None:
    """Reject stored records whose fields have the wrong shape.

    Raises:
        ValueError: If a required field is not a non-empty string, an optional
            field is neither ``None`` nor a string, or ``tags`` is not a list
            of strings.
    """
    for name in required:
        value = data.get(name)
        if not isinstance(value, str) or not value:
            raise ValueError(f"field {name!r} must be a non-empty string, got {value!r}")
    for name in optional:
        value = data.get(name)
        if value is not None and not isinstance(value, str):
            raise ValueError(f"field {name!r} must be a string or null, got {value!r}")
    tags = data.get("tags", [])
    if tags is not None and (
        not isinstance(tags, list) or not all(isinstance(t, str) for t in tags)
    ):
        raise ValueError(f"field 'tags' must be a list of strings, got {tags!r}")


class _Unset:
    """Marker for "field not supplied" in partial updates."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


class TaskStatus(Enum):
    """Task status. Every state can be reached from every other via ``move``."""
    TODO = "todo"
    PENDING = "pending"
    COMPLETED = "completed"
    ARCHIVED = "archived"

    @property
    def is_archived(self) -> bool:
        return self is TaskStatus.ARCHIVED


class TaskPriority(Enum):
    """Task priority with its sort ordinal (unset sorts as 0)."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    TaskPriority.LOW: 1,
    TaskPriority.MEDIUM: 2,
    TaskPriority.HIGH: 3,
}


class SortKey(Enum):
    CREATED_AT = "createdAt"
    DUE_DATE = "dueDate"
    PRIORITY = "priority"
    TITLE = "title"


class SortOrder(Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass
class Project:
    """A named container for tasks."""

    id: str
    name: str
    created_at: str
    updated_at: str
    description: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    archived: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return to_dict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Project:
        """Create Project from dictionary.

        Raises:
            ValueError: If a field has the wrong type.
        """
        _check_fields(data, ("id", "name", "created_at", "updated_at"), ("description",))
        project = from_dict(cls, data)
        project.tags = list(project.tags or [])
        project.archived = bool(project.archived)
        return project


@dataclass
class Task:
    """An individual work item inside a project."""

    id: str
    project_id: str
    title: str
    created_at: str
    updated_at: str
    status: TaskStatus = TaskStatus.TODO
    description: Optional[str] = None
    remarks: Optional[str] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    parent_task_id: Optional[str] = None
    archived: bool = False

    def __post_init__(self):
        """Coerce enum fields loaded from plain strings."""
        if isinstance(self.status, str):
            self.status = TaskStatus(self.status)
        if isinstance(self.priority, str):
            self.priority = TaskPriority(self.priority)

    def with_status(self, status: TaskStatus, timestamp: str) -> Task:
        """Return a copy moved to ``status`` with the derived ``archived`` flag."""
        return replace(
            self,
            status=status,
            archived=status.is_archived,
            updated_at=later_of(timestamp, self.updated_at),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return to_dict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Task:
        """Create Task from dictionary.

        Raises:
            ValueError: If a field has the wrong type or ``status`` or
                ``priority`` hold unknown values.
        """
        _check_fields(
            data,
            ("id", "project_id", "title", "created_at", "updated_at", "status"),
            ("description", "remarks", "priority", "due_date", "parent_task_id"),
        )
        task = from_dict(cls, data)
        task.tags = list(task.tags or [])
        task.archived = task.status.is_archived
        return task


@dataclass
class TaskFilter:
    """Options for the task listing pipeline."""

    project_id: Optional[str] = None
    include_archived: bool = False
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    tags: List[str] = field(default_factory=list)
    has_subtasks: Optional[bool] = None
    sort_by: SortKey = SortKey.CREATED_AT
    order: SortOrder = SortOrder.ASC


@dataclass
class TaskUpdate:
    """Partial task update.

    Fields left as ``UNSET`` (or given as ``None``) are not touched. There is no
    way to clear a field: update only overwrites with supplied values.
    """

    title: Union[str, _Unset] = UNSET
    description: Union[str, _Unset] = UNSET
    remarks: Union[str, _Unset] = UNSET
    priority: Union[TaskPriority, str, _Unset] = UNSET
    due_date: Union[str, _Unset] = UNSET
    tags: Union[List[str], str, _Unset] = UNSET

    def supplied(self) -> Dict[str, Any]:
        """Mapping of the fields that were explicitly given."""
        return {
            name: value
            for name, value in self.__dict__.items()
            if value is not UNSET and value is not None
        }
