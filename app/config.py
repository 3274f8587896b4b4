import sys
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings

APP_DIR = Path(__file__).resolve().parent


class Settings(BaseSettings):
    # Environment: "dev" (default) or "prod"
    env: str = "dev"
    # Database path - can be overridden via DATABASE_PATH env var for Docker
    database_path: str = "mathforce.db"
    # Question bank (JSON list of questions)
    question_bank_path: str = str(APP_DIR / "data" / "questions.json")
    # CORS origins (comma-separated)
    cors_origins: str = ""
    log_level: str = "INFO"
    # Fixed seed for question shuffling (unset = system randomness)
    random_seed: Optional[int] = None
    # How often the background sweeper advances active countdowns
    sweep_interval_seconds: float = 1.0

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


def _load_settings() -> Settings:
    """Load settings and reject values the service cannot run with."""
    s = Settings()

    if s.env not in ("dev", "prod"):
        print(f"ERROR: ENV must be 'dev' or 'prod', got '{s.env}'.", file=sys.stderr)
        sys.exit(1)

    if s.sweep_interval_seconds <= 0:
        print("ERROR: SWEEP_INTERVAL_SECONDS must be positive.", file=sys.stderr)
        sys.exit(1)

    if not s.database_path:
        print("ERROR: DATABASE_PATH must not be empty.", file=sys.stderr)
        sys.exit(1)

    return s


settings = _load_settings()
