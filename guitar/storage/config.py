from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


def _env_bool(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "y", "on")


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


@dataclass(frozen=True)
class StorageConfig:
    database_url: Optional[str]
    db_auto_migrate: bool
    pool_min_size: int
    pool_max_size: int

    @property
    def postgres_enabled(self) -> bool:
        return bool(self.database_url)


@lru_cache(maxsize=1)
def load_storage_config() -> StorageConfig:
    min_size = max(0, _env_int("DB_POOL_MIN_SIZE", 1))
    max_size = max(1, min_size, _env_int("DB_POOL_MAX_SIZE", 10))
    return StorageConfig(
        database_url=(os.getenv("DATABASE_URL") or "").strip() or None,
        db_auto_migrate=_env_bool("DB_AUTO_MIGRATE", True),
        pool_min_size=min_size,
        pool_max_size=max_size,
    )
