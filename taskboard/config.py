import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml  # type: ignore
from dotenv import load_dotenv  # type: ignore

logger = logging.getLogger(__name__)

DEFAULTS: Dict[str, Any] = {
    "storage": {
        "db_path": "~/.taskboard/taskboard.db",
    },
    "logging": {
        "level": "INFO",
        "dir": "~/.taskboard/logs",
        "file": "taskboard.log",
        "console": True,
    },
}

# Environment variable -> dotted config key
ENV_OVERRIDES = {
    "TASKBOARD_DB_PATH": "storage.db_path",
    "TASKBOARD_LOG_LEVEL": "logging.level",
    "TASKBOARD_LOG_DIR": "logging.dir",
    "TASKBOARD_LOG_FILE": "logging.file",
    "TASKBOARD_LOG_CONSOLE": "logging.console",
}


def deep_merge_dicts(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = deep_merge_dicts(dict(base.get(key, {})), value)
        else:
            base[key] = value
    return base


def get_user_config_path() -> Path:
    if os.name == 'posix':
        config_base = Path(os.environ.get('XDG_CONFIG_HOME', Path.home() / '.config'))
    else:
        config_base = Path(os.environ.get('APPDATA', Path.home() / 'AppData' / 'Roaming'))
    return config_base / "taskboard" / "config.yml"


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Error loading config {path}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Ignoring config {path}: top level is not a mapping")
        return {}
    logger.debug(f"Loaded config: {path}")
    return data


def _set_nested(config_dict: Dict[str, Any], key_path: str, value: Any) -> None:
    parts = key_path.split('.')
    cur = config_dict
    for part in parts[:-1]:
        cur = cur.setdefault(part, {})
    cur[parts[-1]] = value


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


@dataclass
class TaskboardConfig:
    """Resolved runtime settings."""

    db_path: Path
    log_level: str = "INFO"
    log_dir: Path = field(default_factory=lambda: Path.home() / ".taskboard" / "logs")
    log_file: str = "taskboard.log"
    log_to_console: bool = True

    @property
    def log_level_value(self) -> int:
        level = logging.getLevelName(self.log_level.upper())
        return level if isinstance(level, int) else logging.INFO

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TaskboardConfig":
        storage = data.get("storage", {}) or {}
        log = data.get("logging", {}) or {}
        db_path = str(storage.get("db_path", DEFAULTS["storage"]["db_path"]))
        return cls(
            db_path=Path(db_path).expanduser(),
            log_level=str(log.get("level", "INFO")).upper(),
            log_dir=Path(str(log.get("dir", DEFAULTS["logging"]["dir"]))).expanduser(),
            log_file=str(log.get("file", "taskboard.log")),
            log_to_console=_as_bool(log.get("console", True)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "storage": {"db_path": str(self.db_path)},
            "logging": {
                "level": self.log_level,
                "dir": str(self.log_dir),
                "file": self.log_file,
                "console": self.log_to_console,
            },
        }


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    cwd: Optional[Union[str, Path]] = None,
    load_env: bool = True,
) -> TaskboardConfig:
    """Load configuration by merging several locations.

    Precedence (lowest to highest):
      1. Built-in defaults
      2. User config (~/.config/taskboard/config.yml or %APPDATA%/taskboard/config.yml)
      3. Project config (<cwd>/taskboard.yml)
      4. Explicit file: ``config_path`` or TASKBOARD_CONFIG_PATH
      5. TASKBOARD_* environment variables, after loading the nearest .env
    """
    if load_env:
        load_dotenv(override=False)

    merged = deep_merge_dicts({}, {k: dict(v) for k, v in DEFAULTS.items()})

    user_config_path = get_user_config_path()
    if user_config_path.exists():
        merged = deep_merge_dicts(merged, _read_yaml(user_config_path))

    project_config_path = Path(cwd or os.getcwd()) / "taskboard.yml"
    if project_config_path.exists():
        merged = deep_merge_dicts(merged, _read_yaml(project_config_path))

    override = config_path or os.getenv("TASKBOARD_CONFIG_PATH")
    if override:
        override_path = Path(override).expanduser()
        if override_path.exists():
            merged = deep_merge_dicts(merged, _read_yaml(override_path))
        else:
            logger.warning(f"Config file {override_path} does not exist; ignoring")

    for env_name, key_path in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            _set_nested(merged, key_path, value)

    return TaskboardConfig.from_dict(merged)
