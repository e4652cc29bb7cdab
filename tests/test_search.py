"""Tests for the search query language and the search engine."""

from datetime import datetime, timezone

import pytest

from taskboard.models import TaskPriority, TaskStatus
from taskboard.search import SearchQuery, parse_search_query


class TestParseSearchQuery:

    def test_structured_tokens_and_text(self):
        parsed = parse_search_query("priority:HIGH status:pending due:before:2025-12-01 launch prep")
        assert parsed.priority is TaskPriority.HIGH
        assert parsed.status is TaskStatus.PENDING
        assert parsed.due_before == datetime(2025, 12, 1, tzinfo=timezone.utc)
        assert parsed.due_after is None
        assert parsed.text == "launch prep"

    def test_due_with_time_component(self):
        parsed = parse_search_query("due:after:2025-06-01T10:30:00Z")
        assert parsed.due_after == datetime(2025, 6, 1, 10, 30, tzinfo=timezone.utc)

    def test_invalid_values_are_ignored(self):
        parsed = parse_search_query("priority:urgent status:doing due:before:soon due:later:2025-01-01 color:red")
        assert parsed.is_empty

    def test_project_token(self):
        assert parse_search_query("project:Launch").project == "Launch"

    @pytest.mark.parametrize("query", [None, "", "   "])
    def test_empty_query(self, query):
        assert parse_search_query(query) == SearchQuery()


class TestSearchEngine:

    def test_missing_due_date_fails_due_predicate(self, manager):
        project = manager.create_project("Launch")
        manager.create_task(project.id, "Launch prep", priority="high")

        assert manager.search_tasks("priority:high due:before:2025-12-01 launch") == []
        assert [t.title for t in manager.search_tasks("priority:high launch")] == ["Launch prep"]

    def test_due_range(self, manager):
        project = manager.create_project("Launch")
        manager.create_task(project.id, "Early", due_date="2025-03-01")
        manager.create_task(project.id, "Late", due_date="2025-11-01T09:00:00Z")

        before = manager.search_tasks("due:before:2025-06-01")
        after = manager.search_tasks("due:after:2025-06-01")
        assert [t.title for t in before] == ["Early"]
        assert [t.title for t in after] == ["Late"]

    def test_text_matches_title_or_description(self, manager):
        project = manager.create_project("Launch")
        manager.create_task(project.id, "Banner", description="Hero IMAGE for homepage")
        manager.create_task(project.id, "Copy")

        assert [t.title for t in manager.search_tasks("image")] == ["Banner"]
        assert [t.title for t in manager.search_tasks("COPY")] == ["Copy"]

    def test_project_filter_matches_exact_name(self, manager):
        launch = manager.create_project("Launch")
        other = manager.create_project("Launch Two")
        manager.create_task(launch.id, "A")
        manager.create_task(other.id, "B")

        assert [t.title for t in manager.search_tasks("project:Launch")] == ["A"]

    def test_tags_match_any(self, manager):
        project = manager.create_project("Launch")
        manager.create_task(project.id, "A", tags="web")
        manager.create_task(project.id, "B", tags="ops,backend")
        manager.create_task(project.id, "C")

        found = manager.search_tasks(tags="backend, WEB", sort_by="title", order="desc")
        assert [t.title for t in found] == ["B", "A"]

    def test_empty_query_returns_visible_tasks(self, manager, launch):
        project, copy, banner = launch
        manager.archive_task(banner.id)

        assert [t.id for t in manager.search_tasks()] == [copy.id]
        everything = manager.search_tasks(include_archived=True)
        assert {t.id for t in everything} == {copy.id, banner.id}

    def test_status_archived_needs_include_archived(self, manager, launch):
        _, _, banner = launch
        manager.archive_task(banner.id)

        assert manager.search_tasks("status:archived") == []
        found = manager.search_tasks("status:archived", include_archived=True)
        assert [t.id for t in found] == [banner.id]

    def test_archived_projects_hidden(self, manager, launch):
        project, _, _ = launch
        manager.archive_project(project.id)
        assert manager.search_tasks("copy") == []
