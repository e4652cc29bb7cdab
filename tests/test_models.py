"""Tests for record models and their serialization."""

import pytest

from taskboard.models import (
    Project,
    Task,
    TaskPriority,
    TaskStatus,
    TaskUpdate,
    UNSET,
    later_of,
)
from taskboard.utils.serialization import from_json, to_json


def _task(**overrides):
    data = dict(
        id="t1",
        project_id="p1",
        title="Write copy",
        created_at="2025-01-01T00:00:00.000000+00:00",
        updated_at="2025-01-01T00:00:00.000000+00:00",
    )
    data.update(overrides)
    return Task(**data)


def test_task_to_dict_uses_enum_values():
    task = _task(status=TaskStatus.PENDING, priority=TaskPriority.HIGH)
    data = task.to_dict()
    assert data["status"] == "pending"
    assert data["priority"] == "high"
    assert data["tags"] == []


def test_task_from_dict_coerces_enums_and_derives_archived():
    task = Task.from_dict({
        "id": "t1",
        "project_id": "p1",
        "title": "Old",
        "status": "archived",
        "priority": "low",
        "archived": False,
        "created_at": "2025-01-01T00:00:00+00:00",
        "updated_at": "2025-01-01T00:00:00+00:00",
        "unknown_field": 1,
    })
    assert task.status is TaskStatus.ARCHIVED
    assert task.priority is TaskPriority.LOW
    assert task.archived is True


def test_with_status_keeps_updated_at_monotonic():
    task = _task(updated_at="2030-01-01T00:00:00.000000+00:00")
    moved = task.with_status(TaskStatus.COMPLETED, "2025-06-01T00:00:00.000000+00:00")
    assert moved.status is TaskStatus.COMPLETED
    assert moved.archived is False
    assert moved.updated_at == "2030-01-01T00:00:00.000000+00:00"
    assert task.status is TaskStatus.TODO


def test_later_of():
    assert later_of("2025-02-01", "2025-01-01") == "2025-02-01"
    assert later_of("2024-12-31", "2025-01-01") == "2025-01-01"


def test_project_json_round_trip():
    project = Project(
        id="p1",
        name="Launch",
        created_at="2025-01-01T00:00:00+00:00",
        updated_at="2025-01-01T00:00:00+00:00",
        tags=["marketing"],
    )
    assert from_json(Project, to_json(project)) == project


def test_task_update_supplied_skips_unset_and_none():
    update = TaskUpdate(title="New", description=None)
    assert update.supplied() == {"title": "New"}
    assert not UNSET
    assert TaskUpdate().supplied() == {}


def test_from_json_rejects_malformed_task():
    payload = to_json(_task())
    broken = payload.replace('"status": "todo"', '"status": null')
    assert broken != payload
    with pytest.raises(ValueError):
        from_json(Task, broken)
