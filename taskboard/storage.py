"""SQLite-backed key-value storage for Projects and Tasks.

The domain services only need a small key-value surface: get, multi-get,
set, atomic multi-set and set membership. :class:`KeyValueStore` provides it
on top of a single SQLite connection that is opened once and shared for the
lifetime of the owning manager. The repositories serialize records as JSON
and maintain the index sets used for listing.
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Type, TypeVar, Union

from .exceptions import PersistenceError
from .models import Project, Task
from .utils.serialization import from_json, to_json

logger = logging.getLogger(__name__)

R = TypeVar("R", Project, Task)


class KeyValueStore:
    """SQLite-backed key-value store with string values and string sets."""

    def __init__(self, db_path: Union[str, Path]):
        """Initialize storage with database path.

        Args:
            db_path: Path to SQLite database file, or ``":memory:"``
        """
        self.db_path = db_path if str(db_path) == ":memory:" else Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()

    # Lifecycle

    def open(self) -> "KeyValueStore":
        """Open the connection and create the schema if needed."""
        with self._lock:
            if self._conn is not None:
                return self
            if isinstance(self.db_path, Path):
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            try:
                conn = sqlite3.connect(
                    str(self.db_path), check_same_thread=False, isolation_level=None
                )
                self._init_schema(conn)
            except sqlite3.Error as e:
                raise PersistenceError(f"Could not open store at {self.db_path}: {e}")
            self._conn = conn
        logger.info(f"Opened key-value store at {self.db_path}")
        return self

    def close(self) -> None:
        with self._lock:
            if self._conn is None:
                return
            self._conn.close()
            self._conn = None
        logger.info(f"Closed key-value store at {self.db_path}")

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def __enter__(self) -> "KeyValueStore":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _init_schema(self, conn: sqlite3.Connection) -> None:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS kv (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS kv_sets (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                key TEXT NOT NULL,
                member TEXT NOT NULL,
                UNIQUE (key, member)
            )
        """)
        conn.execute("CREATE INDEX IF NOT EXISTS idx_kv_sets_key ON kv_sets (key)")

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Yield the shared connection, wrapping driver errors."""
        with self._lock:
            if self._conn is None:
                raise PersistenceError("Store is not open")
            try:
                yield self._conn
            except sqlite3.Error as e:
                raise PersistenceError(f"Database error: {e}")

    # Reads

    def get(self, key: str) -> Optional[str]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
            return row[0] if row else None

    def mget(self, keys: Sequence[str]) -> List[Optional[str]]:
        """Values for ``keys`` in the same order; missing keys give ``None``."""
        if not keys:
            return []
        found: Dict[str, str] = {}
        with self._get_connection() as conn:
            # Stay below SQLite's host parameter limit.
            for start in range(0, len(keys), 500):
                chunk = list(keys[start:start + 500])
                placeholders = ", ".join(["?"] * len(chunk))
                rows = conn.execute(
                    f"SELECT key, value FROM kv WHERE key IN ({placeholders})", chunk
                ).fetchall()
                found.update(rows)
        return [found.get(key) for key in keys]

    def smembers(self, key: str) -> List[str]:
        """Members of the set at ``key`` in insertion order."""
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT member FROM kv_sets WHERE key = ? ORDER BY seq", (key,)
            ).fetchall()
            return [row[0] for row in rows]

    # Writes

    def set(self, key: str, value: str) -> None:
        with self.transaction() as tx:
            tx.set(key, value)

    def set_many(self, items: Dict[str, str]) -> None:
        """Write every item or none of them."""
        if not items:
            return
        with self.transaction() as tx:
            for key, value in items.items():
                tx.set(key, value)

    def sadd(self, key: str, *members: str) -> None:
        with self.transaction() as tx:
            tx.sadd(key, *members)

    @contextmanager
    def transaction(self) -> Iterator["_Transaction"]:
        """Group writes into one atomic SQLite transaction."""
        with self._get_connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield _Transaction(conn)
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")


class _Transaction:
    """Write handle valid inside :meth:`KeyValueStore.transaction`."""

    def __init__(self, conn: sqlite3.Connection):
        self._conn = conn

    def set(self, key: str, value: str) -> None:
        self._conn.execute(
            "INSERT INTO kv (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, value),
        )

    def sadd(self, key: str, *members: str) -> None:
        self._conn.executemany(
            "INSERT OR IGNORE INTO kv_sets (key, member) VALUES (?, ?)",
            [(key, member) for member in members],
        )


def _parse_record(cls: Type[R], key: str, raw: Optional[str]) -> Optional[R]:
    """Decode a stored record; corrupt records are logged and skipped."""
    if raw is None:
        return None
    try:
        return from_json(cls, raw)
    except (ValueError, TypeError) as e:
        logger.error(f"Failed to parse {cls.__name__.lower()} record {key}: {e}")
        return None


def _dump(record: Union[Project, Task]) -> str:
    return to_json(record)


class ProjectRepository:
    """Project records keyed ``project:<id>`` with the ``projects:index`` set."""

    INDEX_KEY = "projects:index"

    def __init__(self, store: KeyValueStore):
        self.store = store

    @staticmethod
    def key(project_id: str) -> str:
        return f"project:{project_id}"

    def create(self, project: Project) -> None:
        """Write a new project and register it in the index."""
        with self.store.transaction() as tx:
            tx.set(self.key(project.id), _dump(project))
            tx.sadd(self.INDEX_KEY, project.id)

    def save(self, project: Project) -> None:
        self.store.set(self.key(project.id), _dump(project))

    def get_by_id(self, project_id: str) -> Optional[Project]:
        key = self.key(project_id)
        return _parse_record(Project, key, self.store.get(key))

    def list_all(self) -> List[Project]:
        ids = self.store.smembers(self.INDEX_KEY)
        return _load_many(self.store, Project, [self.key(i) for i in ids])


class TaskRepository:
    """Task records keyed ``task:<id>``, indexed globally and per project."""

    INDEX_KEY = "tasks:index"

    def __init__(self, store: KeyValueStore):
        self.store = store

    @staticmethod
    def key(task_id: str) -> str:
        return f"task:{task_id}"

    @staticmethod
    def project_key(project_id: str) -> str:
        return f"project:{project_id}:tasks"

    def create(self, task: Task) -> None:
        """Write a new task and register it in both indexes."""
        with self.store.transaction() as tx:
            tx.set(self.key(task.id), _dump(task))
            tx.sadd(self.INDEX_KEY, task.id)
            tx.sadd(self.project_key(task.project_id), task.id)

    def save(self, task: Task) -> None:
        self.store.set(self.key(task.id), _dump(task))

    def save_many(self, tasks: Iterable[Task]) -> None:
        """Overwrite all ``tasks`` in a single all-or-nothing write."""
        self.store.set_many({self.key(t.id): _dump(t) for t in tasks})

    def get_by_id(self, task_id: str) -> Optional[Task]:
        key = self.key(task_id)
        return _parse_record(Task, key, self.store.get(key))

    def list_all(self) -> List[Task]:
        ids = self.store.smembers(self.INDEX_KEY)
        return _load_many(self.store, Task, [self.key(i) for i in ids])

    def list_by_project(self, project_id: str) -> List[Task]:
        ids = self.store.smembers(self.project_key(project_id))
        return _load_many(self.store, Task, [self.key(i) for i in ids])


def _load_many(store: KeyValueStore, cls: Type[R], keys: List[str]) -> List[R]:
    records = []
    for key, raw in zip(keys, store.mget(keys)):
        record = _parse_record(cls, key, raw)
        if record is not None:
            records.append(record)
    return records
