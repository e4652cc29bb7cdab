"""Exception classes for the Taskboard project and task service.

Every error raised by the domain layer derives from :class:`TaskboardError`,
which carries a machine-readable ``code`` and an ``http_status`` so that a
transport layer can map failures to responses without inspecting messages.
"""

from typing import Any, Dict, Optional


class TaskboardError(Exception):
    """Base exception for all Taskboard errors with structured error information."""

    code = "TASKBOARD_ERROR"
    http_status = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        recoverable: bool = True,
        suggested_action: str = "fix_input",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        if code:
            self.code = code
        self.recoverable = recoverable
        self.suggested_action = suggested_action
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "code": self.code,
            "message": str(self),
            "recoverable": self.recoverable,
            "suggested_action": self.suggested_action,
            "details": self.details,
        }


class ValidationError(TaskboardError):
    """Malformed or empty input. Recoverable by correcting the input."""

    code = "VALIDATION_ERROR"
    http_status = 400

    def __init__(self, message: str, field: Optional[str] = None, value: Optional[Any] = None):
        self.field = field
        self.value = value
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = value if isinstance(value, (str, int, float, bool)) else repr(value)
        super().__init__(message, suggested_action="fix_input", details=details)


class NotFoundError(TaskboardError):
    """A referenced project or task does not exist."""

    code = "NOT_FOUND"
    http_status = 404

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("recoverable", False)
        kwargs.setdefault("suggested_action", "check_identifier")
        super().__init__(message, **kwargs)


class ProjectNotFoundError(NotFoundError):
    """Exception when a project cannot be found."""

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(
            f"Project {project_id} does not exist.",
            details={"project_id": project_id},
        )


class ProjectNameNotFoundError(NotFoundError):
    """No project carries the requested name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f'Project with name "{name}" not found.',
            details={"project_name": name},
        )


class TaskNotFoundError(NotFoundError):
    """Exception when a task cannot be found."""

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(
            f"Task {task_id} does not exist.",
            details={"task_id": task_id},
        )


class ConflictError(TaskboardError):
    """Operation disallowed by the current state of an entity."""

    code = "CONFLICT"
    http_status = 409

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("recoverable", False)
        kwargs.setdefault("suggested_action", "check_state")
        super().__init__(message, **kwargs)


class ProjectArchivedError(ConflictError):
    """Mutation attempted on an archived project or one of its tasks."""

    def __init__(self, project_id: str, message: Optional[str] = None):
        self.project_id = project_id
        super().__init__(
            message or f"Project {project_id} is archived.",
            details={"project_id": project_id},
        )


class PersistenceError(TaskboardError):
    """Storage adapter failure (connection, transaction or corrupt record)."""

    code = "PERSISTENCE_ERROR"
    http_status = 503

    def __init__(self, message: str, key: Optional[str] = None):
        self.key = key
        super().__init__(
            message,
            recoverable=False,
            suggested_action="retry_later",
            details={"key": key} if key else None,
        )
