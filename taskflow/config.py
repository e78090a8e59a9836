"""Settings loaded from environment variables (+ optional .env).

Database connection knobs (DATABASE_URL, DB_POOL_*, RUN_MIGRATIONS, DEBUG) are
read by ``taskflow.database.database`` when the engine is built.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv(override=False)

ENV_PREFIX = "TASKFLOW"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # ---- Logging ----
    log_level: str

    # ---- Background recompute ----
    recompute_interval_sec: int
    recompute_chunk_size: int
    recompute_min_delta: int


def load_settings() -> Settings:
    return Settings(
        log_level=_env(_k("LOG_LEVEL"), "INFO").upper(),
        recompute_interval_sec=_env_int(_k("RECOMPUTE_INTERVAL_SEC"), 3 * 60 * 60),
        recompute_chunk_size=_env_int(_k("RECOMPUTE_CHUNK_SIZE"), 200),
        recompute_min_delta=_env_int(_k("RECOMPUTE_MIN_DELTA"), 1),
    )


_settings = None


def get_settings() -> Settings:
    """Process-wide settings, loaded on first use."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings
