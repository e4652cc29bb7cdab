"""Search over tasks with a small ``key:value`` query language.

A query is split on whitespace. Tokens of the form ``key:value`` set a
structured predicate; every other token is a word of the free-text filter::

    priority:high status:pending due:before:2025-12-01 launch copy

Recognized keys are ``priority``, ``status``, ``due`` (``before:<date>`` or
``after:<date>``) and ``project`` (exact project name). Unknown keys and
invalid values are ignored: the parser is best-effort, never strict.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Union

from .models import SortKey, SortOrder, Task, TaskFilter, TaskPriority, TaskStatus
from .project_service import ProjectService
from .task_service import TaskService, sort_tasks
from .validation import normalize_tags, parse_datetime, sanitize_search_query

logger = logging.getLogger(__name__)


@dataclass
class SearchQuery:
    """Predicates extracted from a query string. ``None`` means "not given"."""

    text: Optional[str] = None
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    due_before: Optional[datetime] = None
    due_after: Optional[datetime] = None
    project: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return all(
            value is None
            for value in (
                self.text,
                self.priority,
                self.status,
                self.due_before,
                self.due_after,
                self.project,
            )
        )


def _enum_or_none(enum_cls, value: str):
    for member in enum_cls:
        if member.value == value.lower():
            return member
    return None


def _date_or_none(value: str) -> Optional[datetime]:
    try:
        return parse_datetime(value)
    except ValueError:
        logger.debug(f"Ignoring unparseable due date in search query: {value!r}")
        return None


def parse_search_query(query: Optional[str]) -> SearchQuery:
    """Turn a free-text query into a :class:`SearchQuery`."""
    parsed = SearchQuery()
    if not query:
        return parsed

    words: List[str] = []
    for token in query.split():
        if ":" not in token:
            words.append(token)
            continue

        key, _, value = token.partition(":")
        key = key.lower()
        if key == "priority":
            parsed.priority = _enum_or_none(TaskPriority, value) or parsed.priority
        elif key == "status":
            parsed.status = _enum_or_none(TaskStatus, value) or parsed.status
        elif key == "due":
            bound, _, date_text = value.partition(":")
            if bound.lower() == "before":
                parsed.due_before = _date_or_none(date_text) or parsed.due_before
            elif bound.lower() == "after":
                parsed.due_after = _date_or_none(date_text) or parsed.due_after
        elif key == "project":
            parsed.project = value or parsed.project

    text = " ".join(words).strip()
    parsed.text = text or None
    return parsed


def _due(task: Task) -> Optional[datetime]:
    if not task.due_date:
        return None
    try:
        return parse_datetime(task.due_date)
    except ValueError:
        return None


def matches(task: Task, query: SearchQuery, project_names: Optional[dict] = None) -> bool:
    """True when ``task`` satisfies every predicate of ``query``.

    A task without a due date fails any ``due`` predicate.
    """
    if query.text:
        needle = query.text.lower()
        haystacks = (task.title, task.description or "")
        if not any(needle in h.lower() for h in haystacks):
            return False
    if query.priority is not None and task.priority is not query.priority:
        return False
    if query.status is not None and task.status is not query.status:
        return False
    if query.due_before is not None or query.due_after is not None:
        due = _due(task)
        if due is None:
            return False
        if query.due_before is not None and not due < query.due_before:
            return False
        if query.due_after is not None and not due > query.due_after:
            return False
    if query.project is not None:
        if (project_names or {}).get(task.project_id) != query.project:
            return False
    return True


class SearchEngine:
    """Evaluate search queries over the output of ``TaskService.list_tasks``."""

    def __init__(self, task_service: TaskService, project_service: ProjectService):
        self.task_service = task_service
        self.project_service = project_service

    def search(
        self,
        query: Optional[str] = None,
        tags: Union[str, Iterable[str], None] = None,
        sort_by: Union[SortKey, str, None] = None,
        order: Union[SortOrder, str, None] = None,
        include_archived: bool = False,
    ) -> List[Task]:
        """Tasks matching ``query`` and, if given, any of ``tags``.

        An empty query keeps the whole base collection. Results are sorted by
        ``sort_by``/``order`` (default ``createdAt``/``asc``).
        """
        parsed = parse_search_query(sanitize_search_query(query))
        tasks = self.task_service.list_tasks(TaskFilter(include_archived=include_archived))

        if not parsed.is_empty:
            project_names = None
            if parsed.project is not None:
                project_names = {
                    p.id: p.name
                    for p in self.project_service.list_projects(include_archived=True)
                }
            tasks = [t for t in tasks if matches(t, parsed, project_names)]

        wanted = set(normalize_tags(tags))
        if wanted:
            tasks = [t for t in tasks if wanted.intersection(t.tags)]

        logger.debug(f"Search {query!r} matched {len(tasks)} tasks")
        return sort_tasks(tasks, sort_by, order)
