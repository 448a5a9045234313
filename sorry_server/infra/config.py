from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv


def load_env_file(path: Path | None = None) -> bool:
    """Load an optional `.env` file. Variables already set in the environment win."""

    env_path = path or Path.cwd() / ".env"
    if not env_path.exists():
        return False
    return load_dotenv(dotenv_path=env_path, override=False)


def get_log_level() -> str:
    return os.environ.get("SORRY_LOG_LEVEL", "INFO").upper()


def get_room_code_length() -> int:
    return int(os.environ.get("SORRY_ROOM_CODE_LENGTH", "5"))


def get_room_lock_timeout_ms() -> int:
    return int(os.environ.get("SORRY_ROOM_LOCK_TIMEOUT_MS", "5000"))


def scenarios_enabled() -> bool:
    return os.environ.get("SORRY_ENABLE_SCENARIOS", "").strip().lower() in {"1", "true", "yes", "on"}
