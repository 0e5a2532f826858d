from __future__ import annotations

import logging
from unittest.mock import MagicMock

import pytest

from guitar.api import server


@pytest.fixture
def root_level():
    root = logging.getLogger()
    before = root.level
    before_server = server.logger.level
    yield root
    root.setLevel(before)
    server.logger.setLevel(before_server)


def test_run_applies_log_level_after_root_is_configured(monkeypatch, root_level) -> None:
    # main.py configures the root logger at INFO on import, before run() is called.
    logging.basicConfig(level=logging.INFO)
    root_level.setLevel(logging.INFO)
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("JWT_SECRET", "s3cret")
    uvicorn_run = MagicMock()
    monkeypatch.setattr("uvicorn.run", uvicorn_run)

    server.run(port=9000)

    assert root_level.isEnabledFor(logging.DEBUG)
    assert logging.getLogger("guitar.api.server").isEnabledFor(logging.DEBUG)
    uvicorn_run.assert_called_once()
    assert uvicorn_run.call_args.kwargs["log_level"] == "debug"
    assert uvicorn_run.call_args.kwargs["port"] == 9000


def test_run_unknown_log_level_falls_back_to_info(monkeypatch, root_level) -> None:
    monkeypatch.setenv("LOG_LEVEL", "chatty")
    monkeypatch.setenv("JWT_SECRET", "s3cret")
    uvicorn_run = MagicMock()
    monkeypatch.setattr("uvicorn.run", uvicorn_run)

    server.run()

    assert root_level.level == logging.INFO
    assert uvicorn_run.call_args.kwargs["log_level"] == "info"


def test_run_requires_jwt_secret(monkeypatch, root_level) -> None:
    monkeypatch.delenv("JWT_SECRET", raising=False)
    uvicorn_run = MagicMock()
    monkeypatch.setattr("uvicorn.run", uvicorn_run)

    with pytest.raises(SystemExit, match="JWT_SECRET is required"):
        server.run()
    uvicorn_run.assert_not_called()
