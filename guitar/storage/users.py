from __future__ import annotations

import logging
from typing import Any, Optional, Protocol, Sequence

from guitar.errors import InternalError, NotFound
from guitar.storage.config import StorageConfig
from guitar.storage.models import User

logger = logging.getLogger(__name__)

_USER_COLUMNS = "id, google_id, email, display_name, avatar_url, created_at, updated_at"

UPSERT_USER_SQL = f"""
    INSERT INTO users (google_id, email, display_name, avatar_url)
    VALUES (%s, %s, %s, %s)
    ON CONFLICT (google_id) DO UPDATE SET
        email = EXCLUDED.email,
        display_name = EXCLUDED.display_name,
        avatar_url = EXCLUDED.avatar_url,
        updated_at = now()
    RETURNING {_USER_COLUMNS}
"""

GET_USER_SQL = f"""
    SELECT {_USER_COLUMNS}
    FROM users
    WHERE id = %s
"""


class StoreError(InternalError):
    """The user store could not complete a statement."""


class UserStore(Protocol):
    def upsert_by_google_id(self, google_id: str, email: str, display_name: str, avatar_url: str) -> User:
        ...

    def get_by_id(self, user_id: int) -> User:
        ...


def _row_to_user(row: Sequence[Any]) -> User:
    user_id, google_id, email, display_name, avatar_url, created_at, updated_at = row
    return User(
        id=int(user_id),
        google_id=google_id,
        email=email or "",
        display_name=display_name or "",
        avatar_url=avatar_url or "",
        created_at=created_at,
        updated_at=updated_at,
    )


class PostgresUserStore:
    """
    Users in the `users` table.

    Concurrent logins for the same Google account are resolved by the unique
    index on google_id inside the single upsert statement.
    """

    def __init__(self, pool) -> None:  # type: ignore[no-untyped-def]
        self._pool = pool

    def upsert_by_google_id(self, google_id: str, email: str, display_name: str, avatar_url: str) -> User:
        import psycopg  # type: ignore[import-not-found]

        try:
            with self._pool.connection() as conn:
                row = conn.execute(UPSERT_USER_SQL, (google_id, email, display_name, avatar_url)).fetchone()
        except psycopg.Error as e:
            logger.error("User upsert failed: %s", str(e))
            raise StoreError("failed to save user") from e
        if not row:
            raise StoreError("failed to save user")
        return _row_to_user(row)

    def get_by_id(self, user_id: int) -> User:
        import psycopg  # type: ignore[import-not-found]

        try:
            with self._pool.connection() as conn:
                row = conn.execute(GET_USER_SQL, (user_id,)).fetchone()
        except psycopg.Error as e:
            logger.error("User lookup failed: %s", str(e))
            raise StoreError("failed to load user") from e
        if not row:
            raise NotFound("user not found")
        return _row_to_user(row)

    def close(self) -> None:
        self._pool.close()


def open_pool(cfg: StorageConfig):  # type: ignore[no-untyped-def]
    """Open a psycopg connection pool for DATABASE_URL (blocks until min_size connections exist)."""
    if not cfg.database_url:
        raise ValueError("DATABASE_URL not configured")
    from psycopg_pool import ConnectionPool  # type: ignore[import-not-found]

    pool = ConnectionPool(
        cfg.database_url,
        min_size=cfg.pool_min_size,
        max_size=cfg.pool_max_size,
        open=False,
    )
    pool.open(wait=cfg.pool_min_size > 0)
    return pool


def build_user_store(cfg: StorageConfig) -> "UserStore":
    """
    Postgres store when DATABASE_URL is set; otherwise a process-local store.

    The in-memory fallback is for local development only: users vanish on restart.
    """
    if cfg.postgres_enabled:
        return PostgresUserStore(open_pool(cfg))

    from guitar.storage.memory import MemoryUserStore

    logger.warning("DATABASE_URL not set; using in-memory user store (users are not persisted)")
    return MemoryUserStore()


def close_user_store(store: Optional[UserStore]) -> None:
    close = getattr(store, "close", None)
    if callable(close):
        close()
