import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Always load .env from apps/api/.env (stable, regardless of CWD)
BASE_DIR = Path(__file__).resolve().parents[2]  # apps/api
load_dotenv(dotenv_path=BASE_DIR / ".env", override=False)


class StartupError(Exception):
    """Required configuration is missing; the service must not start."""


def _env(name: str, default: str) -> str:
    v = os.getenv(name)
    return v if v and v.strip() else default


@dataclass(frozen=True)
class Settings:
    env: str = _env("ENV", "local")
    host: str = _env("HOST", "0.0.0.0")
    port: int = int(_env("PORT", "3000"))
    log_level: str = _env("LOG_LEVEL", "INFO")

    # Quiz generation (OpenAI)
    openai_api_key: str | None = os.getenv("OPENAI_API_KEY")
    openai_model: str = _env("OPENAI_MODEL", "gpt-4o-mini")
    openai_timeout_sec: float = float(_env("OPENAI_TIMEOUT_SEC", "180"))
    openai_max_retries: int = int(_env("OPENAI_MAX_RETRIES", "2"))
    openai_attempts: int = int(_env("OPENAI_ATTEMPTS", "2"))
    transcript_max_chars: int = int(_env("QUIZ_TRANSCRIPT_MAX_CHARS", "12000"))

    # Task lifecycle
    task_retention_sec: float = float(_env("TASK_RETENTION_SEC", "3600"))
    sweep_interval_sec: float = float(_env("TASK_SWEEP_INTERVAL_SEC", "600"))

    # Status polling limits (per task id, fixed window)
    status_window_sec: float = float(_env("STATUS_WINDOW_SEC", "60"))
    status_limit_active: int = int(_env("STATUS_LIMIT_ACTIVE", "35"))
    status_limit_terminal: int = int(_env("STATUS_LIMIT_TERMINAL", "10"))

    # Pipeline pacing + stage timeouts (0 disables a timeout)
    processing_delay_sec: float = float(_env("PROCESSING_DELAY_SEC", "0.5"))
    extraction_timeout_sec: float = float(_env("EXTRACTION_TIMEOUT_SEC", "300"))
    generation_timeout_sec: float = float(_env("GENERATION_TIMEOUT_SEC", "180"))


def validate_settings(s: "Settings") -> None:
    if not (s.openai_api_key or "").strip():
        raise StartupError(
            "OPENAI_API_KEY is required. Set it in the environment or in apps/api/.env before starting the API."
        )


settings = Settings()
