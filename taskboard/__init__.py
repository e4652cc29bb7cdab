"""Project and Task Management Service

This package provides a small project and task management service,
featuring:

- SQLite-backed key-value storage with atomic multi-key writes
- Projects that cascade archival to their tasks
- Task listing with filtering by status, priority, tags and subtasks
- A ``key:value`` search language over tasks
- Dual sync/async API for non-blocking operations
- Named tool operations that return JSON-ready payloads

Key Classes:
    - TaskboardManager: Main interface for project/task operations
    - Project: Named container for tasks
    - Task: Individual work item with status, priority and due date
    - TaskboardError: Base class of every structured error

Example Usage:
    ```python
    from taskboard import TaskboardManager, KeyValueStore

    with TaskboardManager(KeyValueStore("./taskboard.db")) as manager:
        project = manager.create_project("Website", tags="marketing")
        task = manager.create_task(project.id, "Draft copy", priority="high")
        manager.move_task(task.id, "completed")
        urgent = manager.search_tasks("priority:high status:completed")
    ```
"""

from ._version import __version__
from .config import TaskboardConfig, load_config
from .exceptions import (
    ConflictError,
    NotFoundError,
    PersistenceError,
    ProjectArchivedError,
    ProjectNameNotFoundError,
    ProjectNotFoundError,
    TaskboardError,
    TaskNotFoundError,
    ValidationError,
)
from .manager import TaskboardManager
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
from .storage import KeyValueStore

__all__ = [
    "__version__",
    "TaskboardManager",
    "KeyValueStore",
    "TaskboardConfig",
    "load_config",
    "Project",
    "Task",
    "TaskStatus",
    "TaskPriority",
    "SortKey",
    "SortOrder",
    "TaskFilter",
    "TaskUpdate",
    "UNSET",
    "TaskboardError",
    "ValidationError",
    "NotFoundError",
    "ProjectNotFoundError",
    "ProjectNameNotFoundError",
    "TaskNotFoundError",
    "ConflictError",
    "ProjectArchivedError",
    "PersistenceError",
]
