"""
Tests for app wiring: settings from the environment, pipeline selection,
startup against a fresh database, and logging setup.
"""
import logging
import pytest
import sys
import os
from pathlib import Path

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import Settings, clean_api_key
from logging_setup import setup_logging
from main import build_pipeline, create_app

PLANNER_VARS = [
    "PLANNER_LLM_API_KEY", "GITHUB_TOKEN", "PLANNER_LLM_MODEL", "PLANNER_LLM_BASE_URL",
    "PLANNER_LLM_MAX_RETRIES", "PLANNER_LLM_TEMPERATURE", "PLANNER_CORS_ORIGINS",
    "PLANNER_DATA_DIR", "PLANNER_DATABASE_PATH", "PLANNER_LOG_LEVEL", "PLANNER_LOG_DIR",
    "PLANNER_APP_NAME", "PLANNER_LLM_TOP_P", "PLANNER_LLM_TIMEOUT_SECONDS",
    "PLANNER_LLM_RETRY_JITTER_MIN", "PLANNER_LLM_RETRY_JITTER_MAX",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """No planner variables set and no .env file in the working directory."""
    for name in PLANNER_VARS:
        # setenv first so monkeypatch also undoes values loaded from .env
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


class TestSettings:
    """Tests for Settings.from_env()."""

    def test_defaults(self, clean_env):
        """Without configuration there is no credential and GitHub Models is the target."""
        settings = Settings.from_env()
        assert settings.llm_api_key is None
        assert not settings.llm_configured
        assert settings.llm_base_url == "https://models.github.ai/inference"
        assert settings.llm_model == "openai/gpt-4.1"
        assert settings.llm_max_retries == 1

    def test_api_key(self, clean_env):
        clean_env.setenv("PLANNER_LLM_API_KEY", " secret ")
        assert Settings.from_env().llm_api_key == "secret"

    def test_github_token_alias(self, clean_env):
        """GITHUB_TOKEN is used when no planner key is set."""
        clean_env.setenv("GITHUB_TOKEN", "ghp_token")
        assert Settings.from_env().llm_api_key == "ghp_token"

    def test_planner_key_wins(self, clean_env):
        clean_env.setenv("GITHUB_TOKEN", "ghp_token")
        clean_env.setenv("PLANNER_LLM_API_KEY", "planner_key")
        assert Settings.from_env().llm_api_key == "planner_key"

    def test_placeholder_key_ignored(self, clean_env):
        """A key copied from .env.example is treated as missing."""
        clean_env.setenv("PLANNER_LLM_API_KEY", "your-api-key-here")
        assert not Settings.from_env().llm_configured

    def test_dotenv_file(self, clean_env, tmp_path):
        """Values are read from .env in the working directory."""
        (tmp_path / ".env").write_text("PLANNER_LLM_MODEL=openai/gpt-4o-mini\n")
        assert Settings.from_env().llm_model == "openai/gpt-4o-mini"

    def test_numbers_and_lists(self, clean_env):
        """Bad numbers fall back to defaults; retries are clamped; lists split on commas."""
        clean_env.setenv("PLANNER_LLM_TEMPERATURE", "warm")
        clean_env.setenv("PLANNER_LLM_MAX_RETRIES", "3")
        clean_env.setenv("PLANNER_CORS_ORIGINS", "http://a.test, http://b.test")
        settings = Settings.from_env()
        assert settings.llm_temperature == 1.0
        assert settings.llm_max_retries == 1
        assert settings.cors_origins == ["http://a.test", "http://b.test"]

    def test_data_dir(self, clean_env, tmp_path):
        clean_env.setenv("PLANNER_DATA_DIR", str(tmp_path / "data"))
        settings = Settings.from_env()
        assert settings.database_path == tmp_path / "data" / "planner.db"
        assert settings.log_dir == tmp_path / "data"

    @pytest.mark.parametrize("raw,expected", [
        (None, None), ("", None), ("  ", None), ("changeme", None), ("abc", "abc"),
    ])
    def test_clean_api_key(self, raw, expected):
        assert clean_api_key(raw) == expected


class TestBuildPipeline:
    """Tests for choosing the generation path at startup."""

    def test_without_key(self):
        """No credential means no AI client at all."""
        pipeline = build_pipeline(Settings(llm_api_key=None))
        assert pipeline.client is None

    def test_with_key(self):
        pipeline = build_pipeline(Settings(llm_api_key="secret", llm_model="openai/gpt-4.1"))
        assert pipeline.client is not None
        assert pipeline.client.model == "openai/gpt-4.1"


class TestStartup:
    """Tests for the app lifespan with a real database."""

    def test_migrates_and_persists(self, settings):
        """Startup creates the database; tasks survive a restart."""
        from fastapi.testclient import TestClient

        with TestClient(create_app(settings)) as client:
            created = client.post("/tasks", json={"title": "Persist me", "date": "2024-01-01"}).json()
            client.post(f"/tasks/{created['id']}/toggle")

        assert Path(settings.database_path).exists()

        with TestClient(create_app(settings)) as client:
            tasks = client.get("/tasks").json()
        assert [t["title"] for t in tasks] == ["Persist me"]
        assert tasks[0]["completed"] is True

    def test_cors(self, settings):
        from fastapi.testclient import TestClient

        with TestClient(create_app(settings)) as client:
            response = client.options("/tasks", headers={
                "Origin": "http://localhost:5173",
                "Access-Control-Request-Method": "GET",
            })
        assert response.headers["access-control-allow-origin"] == "http://localhost:5173"


class TestSetupLogging:
    """Tests for logging_setup.setup_logging()."""

    @pytest.fixture(autouse=True)
    def restore_root(self):
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level
        yield
        for h in list(root.handlers):
            if h not in handlers:
                root.removeHandler(h)
                h.close()
        root.setLevel(level)
        logging.captureWarnings(False)

    def test_file_handler(self, tmp_path):
        """With a log dir, everything down to DEBUG reaches planner.log."""
        setup_logging(logging.INFO, tmp_path / "logs")
        logging.getLogger("planner.test").debug("debug line")
        for h in logging.getLogger().handlers:
            h.flush()

        assert "debug line" in (tmp_path / "logs" / "planner.log").read_text(encoding="utf-8")

    def test_console_only(self):
        setup_logging("WARNING")
        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert handlers[0].level == logging.WARNING

    def test_noisy_loggers_filtered(self):
        """Library chatter below WARNING stays off the console."""
        setup_logging(logging.DEBUG)
        console_filter = logging.getLogger().handlers[0].filters[0]

        def record(name, level):
            return logging.LogRecord(name, level, __file__, 1, "msg", None, None)

        assert not console_filter.filter(record("httpx", logging.INFO))
        assert console_filter.filter(record("httpx", logging.WARNING))
        assert console_filter.filter(record("store", logging.INFO))
