import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional


def _env_int(name: str, default: int) -> int:
    try:
        v = os.environ.get(name)
        if v is not None and v.strip():
            return int(v.strip())
    except ValueError:
        pass
    return default


def _env_float(name: str, default: float) -> float:
    try:
        v = os.environ.get(name)
        if v is not None and v.strip():
            return float(v.strip())
    except ValueError:
        pass
    return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]


@dataclass
class Settings:
    """Application settings loaded from environment variables with safe defaults."""

    app_name: str = "Timing Replay Simulator"
    env: str = "dev"
    database_url: str = "sqlite+aiosqlite:///./simulator.db"
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 3001
    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))

    # Replay defaults, overridable per run through the init endpoint.
    default_event_id: Optional[str] = None
    batch_min: int = 30
    batch_max: int = 50
    interval_seconds: float = 5.0
    overlap_threshold: float = 0.7
    order_variation: float = 20.0

    @classmethod
    def from_env(cls) -> "Settings":
        """Create Settings from environment variables."""
        return cls(
            app_name=os.getenv("APP_NAME", cls.app_name),
            env=os.getenv("ENV", cls.env),
            database_url=os.getenv("DATABASE_URL") or cls.database_url,
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
            host=os.getenv("HOST", cls.host),
            port=_env_int("PORT", cls.port),
            cors_origins=_env_list("CORS_ORIGINS", DEFAULT_CORS_ORIGINS),
            default_event_id=os.getenv("DEFAULT_EVENT_ID") or None,
            batch_min=_env_int("SIMULATOR_BATCH_MIN", cls.batch_min),
            batch_max=_env_int("SIMULATOR_BATCH_MAX", cls.batch_max),
            interval_seconds=_env_float("SIMULATOR_INTERVAL_SECONDS", cls.interval_seconds),
            overlap_threshold=_env_float("SIMULATOR_OVERLAP", cls.overlap_threshold),
            order_variation=_env_float("SIMULATOR_ORDER_VARIATION", cls.order_variation),
        )


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings.from_env()
