"""Tests for the SQLite key-value store and the record repositories."""

import json

import pytest

from taskboard.exceptions import PersistenceError
from taskboard.models import Project, Task, TaskStatus
from taskboard.storage import KeyValueStore, ProjectRepository, TaskRepository
from taskboard.utils.serialization import from_json


def _project(pid="p1", name="Launch"):
    return Project(
        id=pid,
        name=name,
        created_at="2025-01-01T00:00:00.000000+00:00",
        updated_at="2025-01-01T00:00:00.000000+00:00",
    )


def _task(tid="t1", project_id="p1", title="Write copy"):
    return Task(
        id=tid,
        project_id=project_id,
        title=title,
        created_at="2025-01-01T00:00:00.000000+00:00",
        updated_at="2025-01-01T00:00:00.000000+00:00",
    )


class TestKeyValueStore:

    def test_get_and_set(self, store):
        assert store.get("missing") is None
        store.set("a", "1")
        store.set("a", "2")
        assert store.get("a") == "2"

    def test_mget_preserves_order(self, store):
        store.set_many({"a": "1", "b": "2"})
        assert store.mget(["b", "missing", "a"]) == ["2", None, "1"]
        assert store.mget([]) == []

    def test_mget_large_batch(self, store):
        store.set_many({f"k{i}": str(i) for i in range(1200)})
        keys = [f"k{i}" for i in range(1200)]
        assert store.mget(keys) == [str(i) for i in range(1200)]

    def test_smembers_insertion_order(self, store):
        store.sadd("s", "c", "a")
        store.sadd("s", "b", "a")
        assert store.smembers("s") == ["c", "a", "b"]
        assert store.smembers("empty") == []

    def test_transaction_rolls_back(self, store):
        with pytest.raises(RuntimeError):
            with store.transaction() as tx:
                tx.set("a", "1")
                tx.sadd("s", "x")
                raise RuntimeError("boom")
        assert store.get("a") is None
        assert store.smembers("s") == []

    def test_closed_store_raises(self, config):
        kv = KeyValueStore(config.db_path)
        assert not kv.is_open
        with pytest.raises(PersistenceError):
            kv.get("a")

    def test_data_survives_reopen(self, config):
        with KeyValueStore(config.db_path) as kv:
            kv.set("a", "1")
        with KeyValueStore(config.db_path) as kv:
            assert kv.get("a") == "1"

    def test_in_memory_store(self):
        with KeyValueStore(":memory:") as kv:
            kv.set("a", "1")
            assert kv.get("a") == "1"


class TestRepositories:

    def test_project_round_trip(self, store):
        repo = ProjectRepository(store)
        repo.create(_project())
        assert repo.get_by_id("p1") == _project()
        assert [p.id for p in repo.list_all()] == ["p1"]
        assert json.loads(store.get("project:p1"))["name"] == "Launch"

    def test_task_indexes(self, store):
        repo = TaskRepository(store)
        repo.create(_task("t1", "p1"))
        repo.create(_task("t2", "p2"))
        assert store.smembers("tasks:index") == ["t1", "t2"]
        assert store.smembers("project:p1:tasks") == ["t1"]
        assert [t.id for t in repo.list_by_project("p2")] == ["t2"]

    def test_save_many(self, store):
        repo = TaskRepository(store)
        repo.create(_task("t1"))
        repo.create(_task("t2"))
        archived = [
            t.with_status(TaskStatus.ARCHIVED, "2025-02-01T00:00:00.000000+00:00")
            for t in repo.list_all()
        ]
        repo.save_many(archived)
        assert all(t.archived for t in repo.list_all())

    def test_corrupt_records_are_skipped(self, store, caplog):
        repo = TaskRepository(store)
        repo.create(_task("t1"))
        store.sadd("tasks:index", "bad-json", "bad-status")
        store.set("task:bad-json", "{not json")
        bad = _task("bad-status").to_dict()
        bad["status"] = "doing"
        store.set("task:bad-status", json.dumps(bad))

        tasks = repo.list_all()

        assert [t.id for t in tasks] == ["t1"]
        assert repo.get_by_id("bad-json") is None
        assert "Failed to parse task record" in caplog.text

    def test_dangling_index_entry_ignored(self, store):
        repo = ProjectRepository(store)
        store.sadd("projects:index", "ghost")
        assert repo.list_all() == []

    def test_records_stored_as_json(self, store):
        repo = TaskRepository(store)
        task = _task()
        repo.create(task)
        assert from_json(Task, store.get("task:t1")) == task


@pytest.mark.parametrize("field, value", [
    ("status", None),
    ("title", None),
    ("title", ""),
    ("tags", "abc"),
    ("tags", ["ok", 3]),
    ("priority", 3),
    ("created_at", None),
    ("project_id", 42),
])
def test_malformed_task_fields_are_skipped(manager, caplog, field, value):
    project = manager.create_project("Launch")
    good = manager.create_task(project.id, "Good")
    bad = manager.create_task(project.id, "Bad")
    data = bad.to_dict()
    data[field] = value
    manager.store.set(manager.task_repository.key(bad.id), json.dumps(data))

    tasks = manager.list_tasks(project_id=project.id, sort_by="title")

    assert [t.id for t in tasks] == [good.id]
    assert [t.id for t in manager.list_tasks(has_subtasks=False)] == [good.id]
    assert "Failed to parse task record" in caplog.text


@pytest.mark.parametrize("field, value", [("name", None), ("tags", "abc"), ("id", 7)])
def test_malformed_project_fields_are_skipped(manager, field, value):
    good = manager.create_project("Good")
    bad = manager.create_project("Bad")
    data = bad.to_dict()
    data[field] = value
    manager.store.set(manager.project_repository.key(bad.id), json.dumps(data))

    assert [p.id for p in manager.list_projects()] == [good.id]
