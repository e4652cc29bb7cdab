"""TaskboardManager - main interface for the Taskboard domain layer.

This module wires the store, repositories and services together and offers
both synchronous and asynchronous APIs. The store handle is injected (or
built from configuration) and held for the manager's lifetime; use the
manager as a context manager to open and close it.
"""

import asyncio
import functools
import logging
from typing import Any, Callable, Iterable, List, Optional, Union

from .config import TaskboardConfig, load_config
from .models import (
    Project,
    SortKey,
    SortOrder,
    Task,
    TaskFilter,
    TaskPriority,
    TaskStatus,
    TaskUpdate,
    UNSET,
)
from .project_service import ProjectService
from .search import SearchEngine
from .storage import KeyValueStore, ProjectRepository, TaskRepository
from .task_service import TaskService
from .utils.logs import setup_logger
from .validation import parse_order, parse_priority, parse_sort_by, parse_status

logger = logging.getLogger(__name__)


class TaskboardManager:
    """Facade over the project, task and search services.

    Features:
    - Explicit store handle passed in at construction (no module singleton)
    - Dual sync/async API; async calls run on the default executor
    - Typed errors from :mod:`taskboard.exceptions` propagate unchanged
    """

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        config: Optional[TaskboardConfig] = None,
    ):
        """Initialize the manager.

        Args:
            store: Key-value store to use. Built from ``config.db_path`` when
                omitted.
            config: Settings. When omitted they are loaded with
                :func:`load_config` and the ``taskboard`` logger is set up
                from them; callers passing ``config`` own logging setup.
        """
        if config is None:
            config = load_config()
            setup_logger(config)
        self.config = config
        self.store = store or KeyValueStore(self.config.db_path)

        self.project_repository = ProjectRepository(self.store)
        self.task_repository = TaskRepository(self.store)
        self.projects = ProjectService(self.project_repository, self.task_repository)
        self.tasks = TaskService(self.task_repository, self.projects)
        self.search = SearchEngine(self.tasks, self.projects)

        logger.info(f"TaskboardManager initialized with store: {self.store.db_path}")

    # ==================== Lifecycle ====================

    def open(self) -> "TaskboardManager":
        self.store.open()
        return self

    def close(self) -> None:
        self.store.close()

    def __enter__(self) -> "TaskboardManager":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    async def _run(self, func: Callable[..., Any], *args, **kwargs) -> Any:
        call = functools.partial(func, *args, **kwargs)
        return await asyncio.get_event_loop().run_in_executor(None, call)

    # ==================== Project Operations ====================

    def create_project(
        self,
        name: str,
        description: Optional[str] = None,
        tags: Union[str, Iterable[str], None] = None,
    ) -> Project:
        return self.projects.create_project(name, description=description, tags=tags)

    async def create_project_async(self, name: str, description: Optional[str] = None, tags=None) -> Project:
        """Async version of create_project."""
        return await self._run(self.create_project, name, description=description, tags=tags)

    def list_projects(self, include_archived: bool = False) -> List[Project]:
        return self.projects.list_projects(include_archived=include_archived)

    async def list_projects_async(self, include_archived: bool = False) -> List[Project]:
        """Async version of list_projects."""
        return await self._run(self.list_projects, include_archived)

    def get_project(self, project_id: str) -> Project:
        """Get a project by ID, raising ``ProjectNotFoundError`` if absent."""
        return self.projects.get_by_id_or_throw(project_id)

    async def get_project_async(self, project_id: str) -> Project:
        """Async version of get_project."""
        return await self._run(self.get_project, project_id)

    def get_project_by_name(self, name: str) -> Optional[Project]:
        """First project with this exact name, or None."""
        return self.projects.get_by_name(name)

    async def get_project_by_name_async(self, name: str) -> Optional[Project]:
        """Async version of get_project_by_name."""
        return await self._run(self.get_project_by_name, name)

    def archive_project(self, project_id: str) -> Project:
        return self.projects.archive_project(project_id)

    async def archive_project_async(self, project_id: str) -> Project:
        """Async version of archive_project."""
        return await self._run(self.archive_project, project_id)

    def reconcile_archived_projects(self) -> List[Task]:
        return self.projects.reconcile_archived_projects()

    # ==================== Task Operations ====================

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
        return self.tasks.create_task(
            project_id,
            title,
            description=description,
            priority=priority,
            due_date=due_date,
            tags=tags,
            parent_task_id=parent_task_id,
            status=status,
            remarks=remarks,
        )

    async def create_task_async(self, project_id: str, title: str, **kwargs) -> Task:
        """Async version of create_task."""
        return await self._run(self.create_task, project_id, title, **kwargs)

    def get_task(self, task_id: str) -> Task:
        """Get a task by ID, raising ``TaskNotFoundError`` if absent."""
        return self.tasks.get_task(task_id)

    async def get_task_async(self, task_id: str) -> Task:
        """Async version of get_task."""
        return await self._run(self.get_task, task_id)

    def list_tasks(
        self,
        project_id: Optional[str] = None,
        include_archived: bool = False,
        status: Union[TaskStatus, str, None] = None,
        priority: Union[TaskPriority, str, None] = None,
        tags: Union[str, Iterable[str], None] = None,
        has_subtasks: Optional[bool] = None,
        sort_by: Union[SortKey, str, None] = None,
        order: Union[SortOrder, str, None] = None,
    ) -> List[Task]:
        """List tasks with optional filtering and sorting."""
        task_filter = TaskFilter(
            project_id=project_id,
            include_archived=include_archived,
            status=parse_status(status) if status is not None else None,
            priority=parse_priority(priority) if priority is not None else None,
            tags=tags if isinstance(tags, str) else list(tags or []),
            has_subtasks=has_subtasks,
            sort_by=parse_sort_by(sort_by),
            order=parse_order(order),
        )
        return self.tasks.list_tasks(task_filter)

    async def list_tasks_async(self, **kwargs) -> List[Task]:
        """Async version of list_tasks."""
        return await self._run(self.list_tasks, **kwargs)

    def update_task(
        self,
        task_id: str,
        title=UNSET,
        description=UNSET,
        remarks=UNSET,
        priority=UNSET,
        due_date=UNSET,
        tags=UNSET,
    ) -> Task:
        """Overwrite only the fields that were passed."""
        update = TaskUpdate(
            title=title,
            description=description,
            remarks=remarks,
            priority=priority,
            due_date=due_date,
            tags=tags,
        )
        return self.tasks.update_task(task_id, update)

    async def update_task_async(self, task_id: str, **kwargs) -> Task:
        """Async version of update_task."""
        return await self._run(self.update_task, task_id, **kwargs)

    def move_task(self, task_id: str, status: Union[TaskStatus, str]) -> Task:
        return self.tasks.move_task(task_id, status)

    async def move_task_async(self, task_id: str, status: Union[TaskStatus, str]) -> Task:
        """Async version of move_task."""
        return await self._run(self.move_task, task_id, status)

    def archive_task(self, task_id: str) -> Task:
        return self.tasks.archive_task(task_id)

    async def archive_task_async(self, task_id: str) -> Task:
        """Async version of archive_task."""
        return await self._run(self.archive_task, task_id)

    # ==================== Search ====================

    def search_tasks(
        self,
        query: Optional[str] = None,
        tags: Union[str, Iterable[str], None] = None,
        sort_by: Union[SortKey, str, None] = None,
        order: Union[SortOrder, str, None] = None,
        include_archived: bool = False,
    ) -> List[Task]:
        return self.search.search(
            query,
            tags=tags,
            sort_by=sort_by,
            order=order,
            include_archived=include_archived,
        )

    async def search_tasks_async(self, query: Optional[str] = None, **kwargs) -> List[Task]:
        """Async version of search_tasks."""
        return await self._run(self.search_tasks, query, **kwargs)
