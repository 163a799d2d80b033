# app/config.py
"""
Runtime configuration.

Everything comes from environment variables; a local .env file is loaded
first so development runs do not need exported variables.
"""

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

from app.errors import ConfigError

load_dotenv()

DEFAULT_DATABASE_URL = "sqlite:///./stats_sync.db"
DEFAULT_COLLECTION = "current_session"
DEFAULT_SYNC_NAME = "firebase_sync"
DEFAULT_SYNC_INTERVAL_SECONDS = 300

LOGGING_CONFIG = {
    "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    "date_format": "%Y-%m-%d %H:%M:%S",
    "level": "INFO",
}

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    user_id: str | None = None
    firebase_service_account: str | None = None
    firestore_collection: str = DEFAULT_COLLECTION
    sync_name: str = DEFAULT_SYNC_NAME
    sync_interval_seconds: int = DEFAULT_SYNC_INTERVAL_SECONDS
    scheduler_enabled: bool = True
    route_by_user_id: bool = False
    log_level: str = LOGGING_CONFIG["level"]

    def require_user_id(self) -> str:
        if not self.user_id:
            raise ConfigError("USER_ID environment variable is required")
        return self.user_id


def _int_from_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {value}")
    return value


def load_settings() -> Settings:
    return Settings(
        database_url=os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL),
        user_id=os.environ.get("USER_ID") or None,
        firebase_service_account=os.environ.get("FIREBASE_SERVICE_ACCOUNT") or None,
        firestore_collection=os.environ.get("FIRESTORE_COLLECTION", DEFAULT_COLLECTION),
        sync_name=os.environ.get("SYNC_NAME", DEFAULT_SYNC_NAME),
        sync_interval_seconds=_int_from_env("SYNC_INTERVAL_SECONDS", DEFAULT_SYNC_INTERVAL_SECONDS),
        scheduler_enabled=os.environ.get("SYNC_SCHEDULER_ENABLED", "true").strip().lower() in _TRUE_VALUES,
        route_by_user_id=os.environ.get("SYNC_ROUTE_BY_USER_ID", "false").strip().lower() in _TRUE_VALUES,
        log_level=os.environ.get("LOG_LEVEL", LOGGING_CONFIG["level"]).upper(),
    )


@lru_cache
def get_settings() -> Settings:
    return load_settings()
