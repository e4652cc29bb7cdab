"""Task lifecycle and the task listing pipeline.

Listing runs four stages in a fixed order: scope resolution (one project or
all), archived-visibility filtering, attribute filtering, and a stable sort.
:func:`sort_tasks` is shared with the search engine so both apply the same
ordering rules.
"""

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Set, Union

from .exceptions import ProjectArchivedError, TaskNotFoundError, ValidationError
from .models import (
    SortKey,
    SortOrder,
    Task,
    TaskFilter,
    TaskPriority,
    TaskStatus,
    TaskUpdate,
    later_of,
    new_id,
    utc_now,
)
from .project_service import ProjectService
from .storage import TaskRepository
from .validation import (
    normalize_remarks,
    normalize_tags,
    normalize_task_description,
    normalize_task_title,
    parse_datetime,
    parse_order,
    parse_priority,
    parse_sort_by,
    parse_status,
    validate_due_date,
)

logger = logging.getLogger(__name__)

_LATEST = datetime.max.replace(tzinfo=timezone.utc)


def _as_datetime(value: Optional[str]) -> datetime:
    if not value:
        return _LATEST
    try:
        return parse_datetime(value)
    except ValueError:
        return _LATEST


def _sort_key(sort_by: SortKey):
    if sort_by is SortKey.DUE_DATE:
        return lambda t: _as_datetime(t.due_date)
    if sort_by is SortKey.PRIORITY:
        return lambda t: t.priority.rank if t.priority else 0
    if sort_by is SortKey.TITLE:
        return lambda t: t.title.lower()
    return lambda t: _as_datetime(t.created_at)


def sort_tasks(
    tasks: Iterable[Task],
    sort_by: Union[SortKey, str, None] = SortKey.CREATED_AT,
    order: Union[SortOrder, str, None] = SortOrder.ASC,
) -> List[Task]:
    """Stable sort of ``tasks``.

    Missing due dates sort last in ascending order; unset priority sorts
    before ``low``; titles compare case-insensitively. Equal keys keep their
    incoming relative order in both directions.
    """
    sort_by = parse_sort_by(sort_by)
    order = parse_order(order)
    return sorted(tasks, key=_sort_key(sort_by), reverse=order is SortOrder.DESC)


class TaskService:
    """Owns every write to Task records.

    All mutations first confirm, through :class:`ProjectService`, that the
    owning project is still active.
    """

    def __init__(self, tasks: TaskRepository, project_service: ProjectService):
        self.tasks = tasks
        self.project_service = project_service

    def create_task(
        self,
        project_id: str,
        title: str,
        description: Optional[str] = None,
        priority: Union[TaskPriority, str, None] = None,
        due_date: Optional[str] = None,
        tags: Union[str, Iterable[str], None] = None,
        parent_task_id: Optional[str] = None,
        status: Union[TaskStatus, str, None] = None,
        remarks: Optional[str] = None,
    ) -> Task:
        """Create a task inside an active project.

        Raises:
            ProjectNotFoundError: If the project does not exist.
            ProjectArchivedError: If the project is archived.
            ValidationError: For an empty title, an unsupported status or
                priority, an invalid due date, or a parent task that is
                missing or lives in another project.
        """
        project = self.project_service.ensure_active_project(project_id)

        title = normalize_task_title(title)
        status = parse_status(status) if status is not None else TaskStatus.TODO
        priority = parse_priority(priority) if priority is not None else None

        if parent_task_id:
            parent = self.tasks.get_by_id(parent_task_id)
            if parent is None:
                raise ValidationError(
                    f"Parent task {parent_task_id} does not exist.",
                    field="parent_task_id",
                    value=parent_task_id,
                )
            if parent.project_id != project.id:
                raise ValidationError(
                    "Parent task must belong to the same project.",
                    field="parent_task_id",
                    value=parent_task_id,
                )

        now = utc_now()
        task = Task(
            id=new_id(),
            project_id=project.id,
            title=title,
            description=normalize_task_description(description),
            remarks=normalize_remarks(remarks),
            status=status,
            archived=status.is_archived,
            priority=priority,
            due_date=validate_due_date(due_date),
            tags=normalize_tags(tags),
            parent_task_id=parent_task_id or None,
            created_at=now,
            updated_at=now,
        )
        self.tasks.create(task)
        logger.info(f"Created task: {task.title} ({task.id}) in project {project.id}")
        return task

    def get_task(self, task_id: str) -> Task:
        task = self.tasks.get_by_id(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def list_tasks(self, task_filter: Optional[TaskFilter] = None) -> List[Task]:
        """Run the listing pipeline: scope, visibility, attributes, sort."""
        task_filter = task_filter or TaskFilter()
        include_archived = bool(task_filter.include_archived)

        tasks = self._resolve_scope(task_filter.project_id, include_archived)
        if tasks is None:
            return []

        if not include_archived:
            tasks = self._drop_archived(tasks, scoped=task_filter.project_id is not None)

        tasks = self._apply_attribute_filters(tasks, task_filter)
        return sort_tasks(tasks, task_filter.sort_by, task_filter.order)

    def update_task(self, task_id: str, update: TaskUpdate) -> Task:
        """Overwrite the supplied fields of a task.

        Raises:
            TaskNotFoundError: If the task does not exist.
            ProjectArchivedError: If the owning project is archived.
            ValidationError: If a supplied value is invalid.
        """
        task = self._get_mutable(task_id)
        changes = {}
        for name, value in update.supplied().items():
            if name == "title":
                changes["title"] = normalize_task_title(value)
            elif name == "description":
                changes["description"] = normalize_task_description(value)
            elif name == "remarks":
                changes["remarks"] = normalize_remarks(value)
            elif name == "priority":
                changes["priority"] = parse_priority(value)
            elif name == "due_date":
                changes["due_date"] = validate_due_date(value)
            elif name == "tags":
                changes["tags"] = normalize_tags(value)
        # Empty values normalize to None or []; updates never clear a field.
        changes = {k: v for k, v in changes.items() if v not in (None, [])}

        updated = replace(task, updated_at=later_of(utc_now(), task.updated_at), **changes)
        self.tasks.save(updated)
        logger.info(f"Updated task {task_id}: {', '.join(sorted(changes)) or 'no fields'}")
        return updated

    def move_task(self, task_id: str, status: Union[TaskStatus, str]) -> Task:
        """Move a task to ``status``; ``archived`` follows the status.

        Raises:
            TaskNotFoundError: If the task does not exist.
            ProjectArchivedError: If the owning project is archived.
            ValidationError: If ``status`` is not a known status.
        """
        task = self._get_mutable(task_id)
        new_status = parse_status(status)
        moved = task.with_status(new_status, utc_now())
        self.tasks.save(moved)
        logger.info(f"Task {task_id} moved from {task.status.value} to {new_status.value}")
        return moved

    def archive_task(self, task_id: str) -> Task:
        return self.move_task(task_id, TaskStatus.ARCHIVED)

    # Helpers

    def _get_mutable(self, task_id: str) -> Task:
        task = self.get_task(task_id)
        project = self.project_service.get_by_id_or_throw(task.project_id)
        if project.archived:
            raise ProjectArchivedError(
                project.id, "Cannot update tasks inside an archived project."
            )
        return task

    def _resolve_scope(self, project_id: Optional[str], include_archived: bool) -> Optional[List[Task]]:
        """Tasks in scope, or ``None`` when the scoped project is hidden."""
        if project_id is None:
            return self.tasks.list_all()
        project = self.project_service.get_by_id_or_throw(project_id)
        if project.archived and not include_archived:
            return None
        return self.tasks.list_by_project(project.id)

    def _drop_archived(self, tasks: List[Task], scoped: bool) -> List[Task]:
        tasks = [t for t in tasks if not t.archived]
        if scoped:
            return tasks
        active_ids = {p.id for p in self.project_service.list_projects(include_archived=False)}
        return [t for t in tasks if t.project_id in active_ids]

    def _apply_attribute_filters(self, tasks: List[Task], task_filter: TaskFilter) -> List[Task]:
        if task_filter.status is not None:
            status = parse_status(task_filter.status)
            tasks = [t for t in tasks if t.status is status]
        if task_filter.priority is not None:
            priority = parse_priority(task_filter.priority)
            tasks = [t for t in tasks if t.priority is priority]
        wanted_tags = normalize_tags(task_filter.tags)
        if wanted_tags:
            wanted = set(wanted_tags)
            tasks = [t for t in tasks if wanted.intersection(t.tags)]
        if task_filter.has_subtasks is not None:
            parents = self._parent_ids()
            tasks = [t for t in tasks if (t.id in parents) == task_filter.has_subtasks]
        return tasks

    def _parent_ids(self) -> Set[str]:
        """Ids referenced as a parent by any stored task, archived included."""
        return {t.parent_task_id for t in self.tasks.list_all() if t.parent_task_id}
