import logging
import sys
from pathlib import Path

import pytest

# Add the project root to the Python path so that tests can perform absolute
# imports like 'from taskboard.manager import ...' without an install.
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from taskboard.config import TaskboardConfig  # noqa: E402
from taskboard.manager import TaskboardManager  # noqa: E402
from taskboard.storage import KeyValueStore  # noqa: E402


@pytest.fixture
def config(tmp_path: Path) -> TaskboardConfig:
    """Settings that keep every file inside the test's temp directory."""
    return TaskboardConfig(
        db_path=tmp_path / "taskboard.db",
        log_dir=tmp_path / "logs",
        log_to_console=False,
    )


@pytest.fixture
def store(config: TaskboardConfig):
    with KeyValueStore(config.db_path) as kv:
        yield kv


@pytest.fixture
def manager(config: TaskboardConfig):
    with TaskboardManager(config=config) as mgr:
        yield mgr


@pytest.fixture
def launch(manager):
    """The "Launch" project with its two tasks."""
    project = manager.create_project("Launch")
    copy = manager.create_task(
        project.id, "Write copy", priority="high", tags="marketing,urgent"
    )
    banner = manager.create_task(project.id, "Design banner", priority="low")
    return project, copy, banner


@pytest.fixture
def taskboard_logger():
    """The package logger, restored to a bare state after the test."""
    logger = logging.getLogger("taskboard")
    yield logger
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
