"""
Shared pytest fixtures for backend tests.
Uses a temp-file SQLite database per test for isolation.
"""
import pytest
import sqlite3
import sys
import os
from datetime import date

# Add backend to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import Settings
from database import SqliteTaskRepository
from pipeline import GenerationPipeline
from store import TaskStore

# Wednesday; 2024-01-01 is the Monday of the same week
TODAY = date(2024, 1, 3)


@pytest.fixture
def test_db(tmp_path):
    """
    Create an isolated test database for each test.
    Creates the storage table directly (skips alembic).
    """
    db_path = str(tmp_path / "test.db")

    conn = sqlite3.connect(db_path)
    conn.executescript("""
        CREATE TABLE storage (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );
    """)
    conn.commit()
    conn.close()

    yield db_path


@pytest.fixture
def repository(test_db):
    return SqliteTaskRepository(test_db)


@pytest.fixture
def store(repository):
    task_store = TaskStore(repository)
    task_store.load()
    return task_store


@pytest.fixture
def settings(tmp_path):
    """Settings with no LLM credential and paths under tmp_path."""
    return Settings(
        log_dir=tmp_path / "logs",
        database_path=tmp_path / "planner.db",
        llm_api_key=None,
    )


@pytest.fixture
def app_client(store, settings):
    """
    Test client for the FastAPI app with the test store injected and a
    pipeline that has no AI client (fallback only).
    """
    from fastapi.testclient import TestClient
    from main import create_app

    app = create_app(settings, store=store, pipeline=GenerationPipeline(client=None, today=lambda: TODAY))
    with TestClient(app) as client:
        yield client
