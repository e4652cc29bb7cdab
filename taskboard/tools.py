"""Named operations over a :class:`TaskboardManager`.

Each tool takes a plain mapping of arguments, validates it with a pydantic
request model and returns a JSON-ready payload::

    {"items": [...], "suggestions": [...]}   # collections
    {"item": {...}, "suggestions": [...]}    # single records
    {"error": {...}}                         # domain failures

List-valued arguments (``names``, ``titles``, ``task_ids``, ``project_names``
and ``tags``) may be given as comma-separated strings.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel  # type: ignore
from pydantic import ValidationError as RequestValidationError  # type: ignore

from .exceptions import ProjectArchivedError, ProjectNameNotFoundError, TaskboardError, ValidationError
from .manager import TaskboardManager
from .models import Project, Task, TaskStatus
from .validation import parse_comma_list, parse_datetime, validate_identifier

logger = logging.getLogger(__name__)

ListArg = Union[str, List[str], None]


# ==================== Request models ====================

class CreateProjectRequest(BaseModel):
    names: Union[str, List[str]]
    description: Optional[str] = None
    tags: ListArg = None


class ListProjectsRequest(BaseModel):
    include_archived: bool = False


class ArchiveProjectRequest(BaseModel):
    project_names: Union[str, List[str]]


class CreateTaskRequest(BaseModel):
    project_name: str
    titles: Union[str, List[str]]
    description: Optional[str] = None
    remarks: Optional[str] = None
    priority: Optional[str] = None
    due_date: Optional[str] = None
    tags: ListArg = None
    parent_task_id: Optional[str] = None
    status: Optional[str] = None


class ListTasksRequest(BaseModel):
    project_name: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    tags: ListArg = None
    has_subtasks: Optional[bool] = None
    sort_by: Optional[str] = None
    order: Optional[str] = None
    include_archived: bool = False


class MoveTaskRequest(BaseModel):
    task_id: str
    status: str


class UpdateTaskRequest(BaseModel):
    task_id: str
    title: Optional[str] = None
    description: Optional[str] = None
    remarks: Optional[str] = None
    priority: Optional[str] = None
    due_date: Optional[str] = None
    tags: ListArg = None


class ArchiveTaskRequest(BaseModel):
    task_ids: Union[str, List[str]]


class SearchTasksRequest(BaseModel):
    query: Optional[str] = None
    tags: ListArg = None
    sort_by: Optional[str] = None
    order: Optional[str] = None
    include_archived: bool = False


# ==================== Helpers ====================

def _items(records: List[Union[Project, Task]], suggestions: Optional[List[str]] = None) -> Dict[str, Any]:
    return {"items": [r.to_dict() for r in records], "suggestions": suggestions or []}


def _item(record: Union[Project, Task], suggestions: Optional[List[str]] = None) -> Dict[str, Any]:
    return {"item": record.to_dict(), "suggestions": suggestions or []}


def _project_by_name(manager: TaskboardManager, name: str) -> Project:
    name = name.strip()
    project = manager.get_project_by_name(name)
    if project is None:
        raise ProjectNameNotFoundError(name)
    return project


def _is_overdue(task: Task) -> bool:
    if not task.due_date:
        return False
    try:
        return parse_datetime(task.due_date) < datetime.now(timezone.utc)
    except ValueError:
        return False


# ==================== Project tools ====================

def create_project(manager: TaskboardManager, request: CreateProjectRequest) -> Dict[str, Any]:
    names = parse_comma_list(request.names, "names")
    projects = [
        manager.create_project(name, description=request.description, tags=request.tags)
        for name in names
    ]
    return _items(projects)


def list_projects(manager: TaskboardManager, request: ListProjectsRequest) -> Dict[str, Any]:
    return _items(manager.list_projects(include_archived=request.include_archived))


def archive_project(manager: TaskboardManager, request: ArchiveProjectRequest) -> Dict[str, Any]:
    names = parse_comma_list(request.project_names, "project_names")
    projects = []
    for name in names:
        project = _project_by_name(manager, name)
        projects.append(manager.archive_project(project.id))
    return _items(projects)


# ==================== Task tools ====================

def create_task(manager: TaskboardManager, request: CreateTaskRequest) -> Dict[str, Any]:
    project = _project_by_name(manager, request.project_name)
    if project.archived:
        raise ProjectArchivedError(project.id, f'Project "{project.name}" is archived.')

    titles = parse_comma_list(request.titles, "titles")
    tasks = [
        manager.create_task(
            project.id,
            title,
            description=request.description,
            remarks=request.remarks,
            priority=request.priority,
            due_date=request.due_date,
            tags=request.tags,
            parent_task_id=request.parent_task_id,
            status=request.status,
        )
        for title in titles
    ]

    suggestions = [
        "Use update_task to modify priority, due dates, or tags after creation",
        "Create subtasks by setting parent_task_id to this task's ID",
    ]
    if not request.tags:
        suggestions.append("Add tags for better organization (e.g., 'urgent', 'backend', 'feature')")
    if not request.priority:
        suggestions.append(
            "Set priority levels: 'high' for urgent tasks, 'medium' for important, 'low' for nice-to-have"
        )
    if not request.due_date:
        suggestions.append(
            "Set due dates for time-sensitive tasks using ISO format (e.g., '2025-11-01T10:00:00Z')"
        )
    return _items(tasks, suggestions)


def list_tasks(manager: TaskboardManager, request: ListTasksRequest) -> Dict[str, Any]:
    project_id = None
    if request.project_name:
        project_id = _project_by_name(manager, request.project_name).id

    tasks = manager.list_tasks(
        project_id=project_id,
        include_archived=request.include_archived,
        status=request.status,
        priority=request.priority,
        tags=request.tags,
        has_subtasks=request.has_subtasks,
        sort_by=request.sort_by,
        order=request.order,
    )

    suggestions = []
    if not tasks:
        if request.project_name:
            suggestions.append(f'Check if project "{request.project_name}" exists and has tasks')
            suggestions.append("Try listing tasks without project filter to see all tasks")
        if request.status:
            suggestions.append("Try different status filters or remove status filter to see all tasks")
        if request.priority:
            suggestions.append("Try different priority levels or remove priority filter")
        if request.tags:
            suggestions.append("Try different tags or remove tag filter to see more tasks")
        if not request.include_archived:
            suggestions.append("Include archived tasks with include_archived=true")
    return _items(tasks, suggestions)


def move_task(manager: TaskboardManager, request: MoveTaskRequest) -> Dict[str, Any]:
    task = manager.move_task(validate_identifier(request.task_id, "task_id"), request.status)

    if task.status is TaskStatus.COMPLETED:
        suggestions = [
            "Consider creating follow-up tasks or subtasks for completed work",
            "Use archive_task if this task is no longer needed",
        ]
    elif task.status is TaskStatus.PENDING:
        suggestions = [
            "Set a due date for pending tasks to track progress",
            "Update priority if this task became more urgent",
        ]
    elif task.status is TaskStatus.TODO:
        suggestions = [
            "Break down large tasks into smaller subtasks",
            "Add tags for better organization",
        ]
    else:
        suggestions = []
    return _item(task, suggestions)


def update_task(manager: TaskboardManager, request: UpdateTaskRequest) -> Dict[str, Any]:
    task = manager.update_task(
        validate_identifier(request.task_id, "task_id"),
        title=request.title,
        description=request.description,
        remarks=request.remarks,
        priority=request.priority,
        due_date=request.due_date,
        tags=request.tags,
    )

    suggestions = [
        "Use list_tasks to see all tasks in the project",
        "Use search_tasks for advanced filtering by tags, priority, or due dates",
    ]
    if task.status is TaskStatus.COMPLETED:
        suggestions.append("Consider creating follow-up tasks or subtasks for completed work")
    if _is_overdue(task):
        suggestions.append("Task is overdue - consider updating the due date or priority")
    return _item(task, suggestions)


def archive_task(manager: TaskboardManager, request: ArchiveTaskRequest) -> Dict[str, Any]:
    ids = [validate_identifier(i, "task_ids") for i in parse_comma_list(request.task_ids, "task_ids")]
    tasks = [manager.archive_task(task_id) for task_id in ids]
    return _items(tasks, [
        "Archived tasks can be viewed by setting include_archived=true in list_tasks or search_tasks",
        "Use search_tasks with 'status:archived' to find archived tasks",
        "Consider creating new tasks to replace archived ones if needed",
    ])


def search_tasks(manager: TaskboardManager, request: SearchTasksRequest) -> Dict[str, Any]:
    tasks = manager.search_tasks(
        request.query,
        tags=request.tags,
        sort_by=request.sort_by,
        order=request.order,
        include_archived=request.include_archived,
    )

    suggestions = []
    if not tasks:
        suggestions = [
            "Try using broader search terms or check if the project name is correct",
            "Use advanced query syntax like 'priority:high' or 'status:pending'",
            "Try searching without tags filter to see all matching tasks",
        ]
    elif request.query and ":" not in request.query:
        suggestions.append(
            "For more precise results, try advanced queries like 'priority:high due:before:2025-11-01'"
        )
    return _items(tasks, suggestions)


# ==================== Dispatch ====================

TOOLS: Dict[str, tuple] = {
    "create_project": (CreateProjectRequest, create_project),
    "list_projects": (ListProjectsRequest, list_projects),
    "archive_project": (ArchiveProjectRequest, archive_project),
    "create_task": (CreateTaskRequest, create_task),
    "list_tasks": (ListTasksRequest, list_tasks),
    "move_task": (MoveTaskRequest, move_task),
    "update_task": (UpdateTaskRequest, update_task),
    "archive_task": (ArchiveTaskRequest, archive_task),
    "search_tasks": (SearchTasksRequest, search_tasks),
}


def _request_error(exc: RequestValidationError) -> ValidationError:
    first = exc.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or None
    message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    return ValidationError(message, field=field)


def dispatch(
    manager: TaskboardManager,
    name: str,
    arguments: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Run the tool ``name`` with ``arguments``.

    Domain failures are returned as ``{"error": ...}`` payloads.

    Raises:
        ValidationError: If ``name`` is not a known tool.
    """
    if name not in TOOLS:
        raise ValidationError(f"Unknown tool: {name}", field="name", value=name)
    request_cls, handler = TOOLS[name]

    try:
        request = request_cls.model_validate(arguments or {})
    except RequestValidationError as e:
        error = _request_error(e)
        logger.warning(f"Rejected {name} arguments: {error}")
        return {"error": error.to_dict()}

    try:
        return handler(manager, request)
    except TaskboardError as e:
        logger.warning(f"Tool {name} failed with {e.code}: {e}")
        return {"error": e.to_dict()}


def tool_names() -> List[str]:
    return list(TOOLS)


