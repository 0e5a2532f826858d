from __future__ import annotations

from contextlib import contextmanager

import pytest

from guitar.storage.config import StorageConfig
from guitar.storage.migrate import (
    Migration,
    MigrationError,
    apply_migrations,
    load_migrations,
    migrate_on_startup,
)


class _Result:
    def __init__(self, rows) -> None:  # type: ignore[no-untyped-def]
        self._rows = rows

    def fetchall(self):  # type: ignore[no-untyped-def]
        return self._rows


class _Conn:
    def __init__(self, applied=None) -> None:  # type: ignore[no-untyped-def]
        self.applied = dict(applied or {})
        self.statements = []

    def execute(self, sql: str, params=None):  # type: ignore[no-untyped-def]
        self.statements.append((sql, params))
        if sql.startswith("SELECT version, checksum"):
            return _Result(list(self.applied.items()))
        return _Result([])

    @contextmanager
    def transaction(self):  # type: ignore[no-untyped-def]
        yield

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):  # type: ignore[no-untyped-def]
        return False


def _mig(version: str, sql: str = "SELECT 1;", checksum: str = "c") -> Migration:
    return Migration(version=version, checksum=checksum, sql=sql)


def test_bundled_migrations_create_users_table() -> None:
    migs = load_migrations()
    assert [m.version for m in migs][0] == "0001_create_users"
    sql = migs[0].sql
    assert "CREATE TABLE IF NOT EXISTS users" in sql
    assert "google_id TEXT NOT NULL UNIQUE" in sql


def test_apply_skips_already_applied(monkeypatch) -> None:
    conn = _Conn(applied={"0001": "c"})
    monkeypatch.setattr("guitar.storage.migrate._connect", lambda _dsn: conn)

    versions = apply_migrations(dsn="dsn", migrations=[_mig("0001"), _mig("0002", sql="CREATE TABLE t();")])

    assert versions == ["0002"]
    executed = [s for s, _ in conn.statements]
    assert "CREATE TABLE t();" in executed
    assert any("pg_advisory_unlock" in s for s in executed)


def test_apply_refuses_checksum_drift(monkeypatch) -> None:
    conn = _Conn(applied={"0001": "old"})
    monkeypatch.setattr("guitar.storage.migrate._connect", lambda _dsn: conn)

    with pytest.raises(MigrationError, match="changed after it was applied"):
        apply_migrations(dsn="dsn", migrations=[_mig("0001", checksum="new")])
    # Lock is released even on failure.
    assert "pg_advisory_unlock" in conn.statements[-1][0]


def test_migrate_on_startup_needs_database_url() -> None:
    cfg = StorageConfig(database_url=None, db_auto_migrate=True, pool_min_size=1, pool_max_size=10)
    assert migrate_on_startup(cfg) == (False, "DATABASE_URL not configured")


def test_migrate_on_startup_can_be_disabled() -> None:
    cfg = StorageConfig(database_url="postgresql://x", db_auto_migrate=False, pool_min_size=1, pool_max_size=10)
    assert migrate_on_startup(cfg) == (False, "DB_AUTO_MIGRATE is disabled")


def test_migrate_on_startup_wraps_driver_errors(monkeypatch) -> None:
    import psycopg

    def _refuse(_dsn):  # type: ignore[no-untyped-def]
        raise psycopg.OperationalError("connection refused")

    monkeypatch.setattr("guitar.storage.migrate._connect", _refuse)
    cfg = StorageConfig(database_url="postgresql://x", db_auto_migrate=True, pool_min_size=1, pool_max_size=10)

    with pytest.raises(MigrationError, match="connection refused"):
        migrate_on_startup(cfg)


def test_migration_failure_aborts_startup(auth_cfg, monkeypatch) -> None:
    from unittest.mock import MagicMock

    from fastapi.testclient import TestClient

    from guitar.api.server import create_app

    def _drift(*, dsn, migrations=None):  # type: ignore[no-untyped-def]
        raise MigrationError("migration 0001_create_users changed after it was applied")

    build = MagicMock()
    monkeypatch.setattr("guitar.storage.migrate.apply_migrations", _drift)
    monkeypatch.setattr("guitar.api.server.build_user_store", build)
    app = create_app(
        auth_config=auth_cfg,
        storage_config=StorageConfig(
            database_url="postgresql://x", db_auto_migrate=True, pool_min_size=1, pool_max_size=10
        ),
    )

    with pytest.raises(MigrationError):
        with TestClient(app):
            pass
    build.assert_not_called()
    assert app.state.user_store is None
