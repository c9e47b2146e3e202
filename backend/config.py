"""Settings loaded from environment variables (+ optional .env).

The LLM credential lives here and only here: it is read server-side and
never handed to anything a client can reach.
"""
import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv

ENV_PREFIX = "PLANNER"

# Values copied from .env.example that must not be sent as a real key
PLACEHOLDER_KEYS = {"your-api-key-here", "your-github-token-here", "changeme"}


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: Optional[str] = None) -> Optional[str]:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


def clean_api_key(raw: Optional[str]) -> Optional[str]:
    """Return the key, or None when it is blank or an example placeholder."""
    if raw is None:
        return None
    key = raw.strip()
    if not key or key.lower() in PLACEHOLDER_KEYS:
        return None
    return key


@dataclass(frozen=True)
class Settings:
    # ---- App / logging ----
    app_name: str = "planner"
    log_level: str = "INFO"
    log_dir: Path = Path(".local/planner")

    # ---- Storage ----
    database_path: Path = Path(".local/planner/planner.db")

    # ---- HTTP ----
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:5173"])

    # ---- LLM (OpenAI-compatible chat completions) ----
    llm_api_key: Optional[str] = None
    llm_base_url: str = "https://models.github.ai/inference"
    llm_model: str = "openai/gpt-4.1"
    llm_temperature: float = 1.0
    llm_top_p: float = 1.0
    llm_timeout_seconds: float = 30.0
    llm_max_retries: int = 1
    llm_retry_jitter_min: float = 0.5
    llm_retry_jitter_max: float = 1.5

    @property
    def llm_configured(self) -> bool:
        return self.llm_api_key is not None

    @staticmethod
    def from_env() -> "Settings":
        load_dotenv(find_dotenv(usecwd=True), override=False)

        data_dir = Path(_env(_k("DATA_DIR"), ".local/planner")).expanduser()

        return Settings(
            app_name=_env(_k("APP_NAME"), "planner"),
            log_level=_env(_k("LOG_LEVEL"), "INFO").upper(),
            log_dir=Path(_env(_k("LOG_DIR"), str(data_dir))).expanduser(),
            database_path=Path(_env(_k("DATABASE_PATH"), str(data_dir / "planner.db"))).expanduser(),
            cors_origins=_env_list(_k("CORS_ORIGINS"), ["http://localhost:5173"]),
            # GITHUB_TOKEN is accepted for GitHub Models deployments
            llm_api_key=clean_api_key(_first_env(_k("LLM_API_KEY"), "GITHUB_TOKEN")),
            llm_base_url=_env(_k("LLM_BASE_URL"), "https://models.github.ai/inference"),
            llm_model=_env(_k("LLM_MODEL"), "openai/gpt-4.1"),
            llm_temperature=_env_float(_k("LLM_TEMPERATURE"), 1.0),
            llm_top_p=_env_float(_k("LLM_TOP_P"), 1.0),
            llm_timeout_seconds=_env_float(_k("LLM_TIMEOUT_SECONDS"), 30.0),
            llm_max_retries=max(0, min(1, _env_int(_k("LLM_MAX_RETRIES"), 1))),
            llm_retry_jitter_min=_env_float(_k("LLM_RETRY_JITTER_MIN"), 0.5),
            llm_retry_jitter_max=_env_float(_k("LLM_RETRY_JITTER_MAX"), 1.5),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
