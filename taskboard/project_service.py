"""Project lifecycle: creation, lookup, listing and the archive cascade."""

import logging
from dataclasses import replace
from typing import Iterable, List, Optional, Union

from .exceptions import PersistenceError, ProjectArchivedError, ProjectNotFoundError
from .models import Project, Task, TaskStatus, later_of, new_id, utc_now
from .storage import ProjectRepository, TaskRepository
from .validation import (
    normalize_project_description,
    normalize_project_name,
    normalize_tags,
)

logger = logging.getLogger(__name__)


class ProjectService:
    """Owns every write to Project records.

    Archiving a project is a two-step saga: the project record is written
    first, then all of its still-active tasks are archived in one batch. If
    the batch fails the project stays archived and
    :meth:`reconcile_archived_projects` repairs the stragglers.
    """

    def __init__(self, projects: ProjectRepository, tasks: TaskRepository):
        self.projects = projects
        self.tasks = tasks

    def create_project(
        self,
        name: str,
        description: Optional[str] = None,
        tags: Union[str, Iterable[str], None] = None,
    ) -> Project:
        """Create a new active project.

        Raises:
            ValidationError: If the name is empty after normalization or
                contains unsupported characters.
        """
        now = utc_now()
        project = Project(
            id=new_id(),
            name=normalize_project_name(name),
            description=normalize_project_description(description),
            tags=normalize_tags(tags),
            archived=False,
            created_at=now,
            updated_at=now,
        )
        self.projects.create(project)
        logger.info(f"Created project: {project.name} ({project.id})")
        return project

    def list_projects(self, include_archived: bool = False) -> List[Project]:
        """Projects sorted by creation time; archived ones only on request."""
        projects = self.projects.list_all()
        if not include_archived:
            projects = [p for p in projects if not p.archived]
        return sorted(projects, key=lambda p: p.created_at)

    def get_by_id_or_throw(self, project_id: str) -> Project:
        project = self.projects.get_by_id(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    def get_by_name(self, name: str) -> Optional[Project]:
        """First project (archived included) whose name matches exactly.

        Names are not unique; later duplicates are never returned.
        """
        for project in self.projects.list_all():
            if project.name == name:
                return project
        return None

    def ensure_active_project(self, project_id: str) -> Project:
        project = self.get_by_id_or_throw(project_id)
        if project.archived:
            raise ProjectArchivedError(project_id)
        return project

    def archive_project(self, project_id: str) -> Project:
        """Archive a project and cascade to its tasks. Idempotent.

        Raises:
            ProjectNotFoundError: If the project does not exist.
            PersistenceError: If the task batch could not be written. The
                project itself is already archived at that point.
        """
        project = self.get_by_id_or_throw(project_id)
        if project.archived:
            logger.debug(f"Project {project_id} already archived")
            return project

        now = later_of(utc_now(), project.updated_at)
        project = replace(project, archived=True, updated_at=now)
        self.projects.save(project)

        archived_tasks = self._archive_tasks(self.tasks.list_by_project(project.id), now)
        try:
            self.tasks.save_many(archived_tasks)
        except PersistenceError:
            logger.error(
                f"Project {project_id} archived but cascade of "
                f"{len(archived_tasks)} tasks failed; run reconciliation"
            )
            raise

        logger.info(f"Archived project {project.name} ({project.id}) and {len(archived_tasks)} tasks")
        return project

    def reconcile_archived_projects(self) -> List[Task]:
        """Archive any active task left under an archived project.

        Returns:
            The tasks that were repaired.
        """
        repaired: List[Task] = []
        for project in self.projects.list_all():
            if not project.archived:
                continue
            stragglers = self._archive_tasks(
                self.tasks.list_by_project(project.id), utc_now()
            )
            if stragglers:
                self.tasks.save_many(stragglers)
                logger.warning(
                    f"Reconciled {len(stragglers)} active tasks under archived project {project.id}"
                )
                repaired.extend(stragglers)
        return repaired

    @staticmethod
    def _archive_tasks(tasks: List[Task], timestamp: str) -> List[Task]:
        # Cascaded tasks carry the project's archive timestamp as given.
        return [
            replace(task, status=TaskStatus.ARCHIVED, archived=True, updated_at=timestamp)
            for task in tasks
            if not task.archived
        ]
