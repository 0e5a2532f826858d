"""
Pytest config.

Local imports like `import guitar` rely on the repo root being on sys.path. When a
global `pytest` entrypoint is used without an editable install that does not happen
reliably during collection, so we pin it here.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


def _ensure_repo_root_on_syspath() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    repo_root_str = str(repo_root)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


_ensure_repo_root_on_syspath()

TEST_SECRET = "test-secret-key-for-testing-purposes-only"


@pytest.fixture(autouse=True)
def _clear_config_caches():
    """Config loaders are lru_cached; env changes in one test must not leak into the next."""
    from guitar.auth.config import load_auth_config
    from guitar.storage.config import load_storage_config

    load_auth_config.cache_clear()
    load_storage_config.cache_clear()
    yield
    load_auth_config.cache_clear()
    load_storage_config.cache_clear()


@pytest.fixture
def auth_cfg():
    from guitar.auth.config import AuthConfig

    return AuthConfig(
        google_client_id="test-client-id",
        google_client_secret="test-client-secret",
        google_redirect_url="http://localhost:8080/api/auth/google/callback",
        jwt_secret=TEST_SECRET,
        frontend_url="http://localhost:5173",
        cookie_secure=False,
        port=8080,
    )


@pytest.fixture
def store():
    from guitar.storage.memory import MemoryUserStore

    return MemoryUserStore()


@pytest.fixture
def client(auth_cfg, store):
    from fastapi.testclient import TestClient

    from guitar.api.server import create_app

    return TestClient(create_app(auth_config=auth_cfg, user_store=store))
