"""Tests for the async half of the TaskboardManager API."""

from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest
from rich.logging import RichHandler

from taskboard.exceptions import ProjectNotFoundError, TaskNotFoundError
from taskboard.manager import TaskboardManager
from taskboard.models import TaskStatus
from taskboard.storage import KeyValueStore


class TestAsyncOperations:

    @pytest.mark.asyncio
    async def test_project_and_task_flow(self, manager):
        project = await manager.create_project_async("Launch", tags="web")
        task = await manager.create_task_async(project.id, "Write copy", priority="high")

        assert (await manager.get_project_async(project.id)).name == "Launch"
        assert (await manager.get_project_by_name_async("Launch")).id == project.id
        assert [t.id for t in await manager.list_tasks_async(project_id=project.id)] == [task.id]

        updated = await manager.update_task_async(task.id, remarks="needs review")
        assert updated.remarks == "needs review"

        moved = await manager.move_task_async(task.id, "completed")
        assert moved.status is TaskStatus.COMPLETED

        found = await manager.search_tasks_async("status:completed copy")
        assert [t.id for t in found] == [task.id]

        archived = await manager.archive_task_async(task.id)
        assert archived.archived is True
        assert await manager.list_projects_async() == [project]

        await manager.archive_project_async(project.id)
        assert await manager.list_projects_async() == []
        assert (await manager.get_task_async(task.id)).status is TaskStatus.ARCHIVED

    @pytest.mark.asyncio
    async def test_errors_propagate(self, manager):
        with pytest.raises(ProjectNotFoundError):
            await manager.get_project_async("missing")
        with pytest.raises(TaskNotFoundError):
            await manager.move_task_async("missing", "todo")


class TestLifecycle:

    def test_injected_store_is_used(self, config):
        store = KeyValueStore(config.db_path)
        with TaskboardManager(store=store, config=config) as manager:
            assert manager.store is store
            assert store.is_open
            manager.create_project("Launch")
        assert not store.is_open

    def test_records_persist_between_managers(self, config):
        with TaskboardManager(config=config) as manager:
            project = manager.create_project("Launch")
            manager.create_task(project.id, "Write copy")
        with TaskboardManager(config=config) as manager:
            assert manager.get_project(project.id).name == "Launch"
            assert [t.title for t in manager.list_tasks()] == ["Write copy"]

    def test_loaded_config_sets_up_logging(self, config, monkeypatch, taskboard_logger):
        config.log_to_console = True
        monkeypatch.setattr("taskboard.manager.load_config", lambda: config)

        manager = TaskboardManager()

        assert manager.config is config
        file_handlers = [h for h in taskboard_logger.handlers if isinstance(h, RotatingFileHandler)]
        assert len(file_handlers) == 1
        assert Path(file_handlers[0].baseFilename) == config.log_dir / config.log_file
        assert any(isinstance(h, RichHandler) for h in taskboard_logger.handlers)

    def test_explicit_config_leaves_logging_alone(self, config, taskboard_logger):
        TaskboardManager(config=config)
        assert taskboard_logger.handlers == []
