import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol, Union

from errors import StorageFailure

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# Keys of the two persisted documents
TASKS_KEY = "tasks"
COMPLETION_KEY = "completion"

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"


@contextmanager
def get_db(db_path: PathLike):
    """Context manager for database connections."""
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


def init_db(db_path: PathLike) -> None:
    """Initialize database by running Alembic migrations."""
    from alembic import command
    from alembic.config import Config

    db_path = Path(db_path).expanduser().resolve()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS_DIR))
    config.set_main_option("sqlalchemy.url", f"sqlite:///{db_path}")
    command.upgrade(config, "head")
    logger.info("Database ready at %s", db_path)


class TaskRepository(Protocol):
    """Persistence slot behind TaskStore. Any method may raise StorageFailure."""

    def load_tasks(self) -> list[dict]: ...

    def load_completion(self) -> dict: ...

    def save(self, tasks: Optional[list[dict]] = None, completion: Optional[dict] = None) -> None: ...


class SqliteTaskRepository:
    """
    Stores the task list and the completion map as two JSON documents in
    the storage table. save() writes whatever it is given in one
    transaction, so tasks and completion state never land separately.
    """

    def __init__(self, db_path: PathLike):
        self.db_path = Path(db_path)

    def _read(self, key: str):
        try:
            with get_db(self.db_path) as conn:
                row = conn.execute("SELECT value FROM storage WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise StorageFailure(f"Could not read '{key}' from {self.db_path}: {e}") from e
        if row is None:
            return None
        try:
            return json.loads(row["value"])
        except json.JSONDecodeError as e:
            raise StorageFailure(f"Stored '{key}' is not valid JSON: {e}") from e

    def load_tasks(self) -> list[dict]:
        data = self._read(TASKS_KEY)
        if data is None:
            return []
        if not isinstance(data, list):
            raise StorageFailure(f"Stored '{TASKS_KEY}' must be a JSON array")
        return data

    def load_completion(self) -> dict:
        data = self._read(COMPLETION_KEY)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise StorageFailure(f"Stored '{COMPLETION_KEY}' must be a JSON object")
        return data

    def save(self, tasks: Optional[list[dict]] = None, completion: Optional[dict] = None) -> None:
        documents = {}
        if tasks is not None:
            documents[TASKS_KEY] = tasks
        if completion is not None:
            documents[COMPLETION_KEY] = completion
        if not documents:
            return

        now = datetime.now().isoformat()
        try:
            with get_db(self.db_path) as conn:
                for key, value in documents.items():
                    conn.execute(
                        """INSERT INTO storage (key, value, updated_at) VALUES (?, ?, ?)
                           ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at""",
                        (key, json.dumps(value), now)
                    )
                conn.commit()
        except sqlite3.Error as e:
            raise StorageFailure(f"Could not write to {self.db_path}: {e}") from e
        logger.debug("Saved %s to %s", ", ".join(documents), self.db_path)
