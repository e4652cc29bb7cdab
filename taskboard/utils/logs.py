import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

from rich.logging import RichHandler

from taskboard.config import TaskboardConfig


def setup_logger(
    config: Optional[TaskboardConfig] = None,
    log_file: Optional[str] = None,
    log_level: Optional[int] = None,
    log_dir: Optional[Union[str, Path]] = None,
    console: Optional[bool] = None,
) -> logging.Logger:
    """Configure the ``taskboard`` logger.

    Records go to a rotating file under ``log_dir`` and, unless disabled, to
    the terminal through rich. Explicit arguments win over ``config``.
    """
    if config is not None:
        log_file = log_file or config.log_file
        log_level = log_level if log_level is not None else config.log_level_value
        log_dir = log_dir or config.log_dir
        console = config.log_to_console if console is None else console

    logger = logging.getLogger("taskboard")
    logger.setLevel(log_level if log_level is not None else logging.INFO)

    # Remove any existing handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    log_dir = Path(log_dir or Path.home() / ".taskboard" / "logs")
    os.makedirs(log_dir, exist_ok=True)

    file_handler = RotatingFileHandler(
        log_dir / (log_file or "taskboard.log"),
        maxBytes=1024 * 1024,  # 1 MB
        backupCount=5,
    )
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    if console is None or console:
        logger.addHandler(RichHandler(rich_tracebacks=True, show_path=False))

    logger.propagate = False
    return logger
