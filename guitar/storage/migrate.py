"""
Schema migrations for the users table.

Each `migrations/NNNN_*.sql` file is applied once, inside its own transaction, and
recorded in `schema_migrations` with its sha256. Replicas serialize on a Postgres
advisory lock. A file whose checksum changed after it was applied is refused.

Startup calls `migrate_on_startup`; any failure there aborts startup.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from guitar.storage.config import StorageConfig, load_storage_config

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"

MIGRATION_LOCK_KEY = 4823619051  # bigint

SCHEMA_MIGRATIONS_SQL = """
CREATE TABLE IF NOT EXISTS schema_migrations (
  version text PRIMARY KEY,
  checksum text NOT NULL,
  applied_at timestamptz NOT NULL DEFAULT now()
);
"""


class MigrationError(RuntimeError):
    """The schema could not be brought up to date."""


@dataclass(frozen=True)
class Migration:
    version: str
    checksum: str
    sql: str


def load_migrations() -> List[Migration]:
    out: List[Migration] = []
    for p in sorted(MIGRATIONS_DIR.glob("*.sql")):
        raw = p.read_bytes()
        out.append(Migration(version=p.stem, checksum=hashlib.sha256(raw).hexdigest(), sql=raw.decode("utf-8")))
    return out


def _connect(dsn: str):
    import psycopg  # type: ignore[import-not-found]

    return psycopg.connect(dsn)


def apply_migrations(*, dsn: str, migrations: Optional[Iterable[Migration]] = None) -> List[str]:
    """Apply pending migrations and return the versions applied, in order."""
    pending = list(migrations) if migrations is not None else load_migrations()
    applied_now: List[str] = []

    with _connect(dsn) as conn:
        conn.execute("SELECT pg_advisory_lock(%s);", (MIGRATION_LOCK_KEY,))
        try:
            conn.execute(SCHEMA_MIGRATIONS_SQL)
            rows = conn.execute("SELECT version, checksum FROM schema_migrations;").fetchall()
            recorded = {str(r[0]): str(r[1]) for r in rows}

            for m in pending:
                prev = recorded.get(m.version)
                if prev == m.checksum:
                    continue
                if prev is not None:
                    raise MigrationError(
                        f"migration {m.version} changed after it was applied: db={prev[:12]} file={m.checksum[:12]}"
                    )
                with conn.transaction():
                    conn.execute(m.sql)
                    conn.execute(
                        "INSERT INTO schema_migrations(version, checksum) VALUES (%s, %s);",
                        (m.version, m.checksum),
                    )
                logger.info("Applied migration %s", m.version)
                applied_now.append(m.version)
        finally:
            conn.execute("SELECT pg_advisory_unlock(%s);", (MIGRATION_LOCK_KEY,))

    return applied_now


def migrate_on_startup(cfg: Optional[StorageConfig] = None) -> Tuple[bool, str]:
    """
    Run pending migrations when Postgres is configured and DB_AUTO_MIGRATE is on.

    Returns (did_attempt, message). Driver errors are raised as `MigrationError`;
    the server does not start against a schema it could not migrate.
    """
    cfg = cfg or load_storage_config()
    if not cfg.database_url:
        return False, "DATABASE_URL not configured"
    if not cfg.db_auto_migrate:
        return False, "DB_AUTO_MIGRATE is disabled"

    import psycopg  # type: ignore[import-not-found]

    try:
        versions = apply_migrations(dsn=cfg.database_url)
    except psycopg.Error as e:
        raise MigrationError(f"migrations failed: {e}") from e
    if versions:
        return True, f"Applied {len(versions)} migration(s): {', '.join(versions)}"
    return True, "No pending migrations"


def main() -> int:
    cfg = load_storage_config()
    if not cfg.database_url:
        print("Postgres not configured (set DATABASE_URL).")
        return 2
    versions = apply_migrations(dsn=cfg.database_url)
    print(f"Applied: {', '.join(versions)}" if versions else "No pending migrations.")
    return 0
