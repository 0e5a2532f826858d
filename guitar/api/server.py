"""
HTTP server for the tuner backend.

Builds the FastAPI app with its process-wide collaborators (auth config + user
store) injected on `app.state`, and enforces bearer-token auth for every
non-public path.
"""

from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request

from guitar.api import auth as auth_routes
from guitar.api.errors import error_response, register_exception_handlers
from guitar.auth.config import AuthConfig, load_auth_config
from guitar.auth.deps import authenticate_bearer, is_public_path, set_current_user_id
from guitar.errors import Unauthorized
from guitar.storage.config import StorageConfig, load_storage_config
from guitar.storage.users import UserStore, build_user_store, close_user_store

logger = logging.getLogger(__name__)


def create_app(
    *,
    auth_config: Optional[AuthConfig] = None,
    user_store: Optional[UserStore] = None,
    storage_config: Optional[StorageConfig] = None,
) -> FastAPI:
    """
    Build the app.

    Collaborators passed in are used as-is (tests inject them). Anything omitted is
    built from the environment at startup, and the store built here is also closed here.
    """
    app = FastAPI(title="Guitar tuner backend")
    app.state.auth_config = auth_config or load_auth_config()
    app.state.user_store = user_store
    register_exception_handlers(app)

    @app.on_event("startup")
    def _startup_user_store() -> None:
        if app.state.user_store is not None:
            return
        from guitar.storage.migrate import migrate_on_startup

        cfg = storage_config or load_storage_config()
        did_attempt, msg = migrate_on_startup(cfg)
        if did_attempt:
            logger.info("DB migrations: %s", msg)
        app.state.user_store = build_user_store(cfg)
        app.state.owns_user_store = True
        logger.info("User store ready: postgres=%s", cfg.postgres_enabled)

    @app.on_event("shutdown")
    def _shutdown_user_store() -> None:
        if getattr(app.state, "owns_user_store", False):
            close_user_store(app.state.user_store)
            app.state.user_store = None

    @app.middleware("http")
    async def authenticate_and_log(request: Request, call_next):
        """Require a bearer access token on non-public paths and log every request."""
        start_time = time.time()
        path = request.url.path or ""
        try:
            if request.method != "OPTIONS" and not is_public_path(path):
                # Fail closed: anything not explicitly public requires auth.
                try:
                    user_id = authenticate_bearer(
                        app.state.auth_config.jwt_secret,
                        request.headers.get("Authorization"),
                    )
                except Unauthorized as e:
                    logger.debug("%s %s - 401 (%s)", request.method, path, e.message)
                    return error_response(401, e.message)
                set_current_user_id(request, user_id)

            response = await call_next(request)
            process_time = time.time() - start_time
            logger.debug("%s %s - %d (%.3fs)", request.method, path, response.status_code, process_time)
            return response
        except Exception as e:
            process_time = time.time() - start_time
            logger.exception("%s %s - ERROR after %.3fs: %s", request.method, path, process_time, str(e))
            return error_response(500, "internal error")

    @app.get("/healthz")
    def healthz() -> Dict[str, Any]:
        return {"ok": True}

    @app.get("/api/health")
    def health() -> Dict[str, Any]:
        return {"status": "ok"}

    app.include_router(auth_routes.router)
    return app


def run(host: str = "0.0.0.0", port: Optional[int] = None) -> None:
    import uvicorn

    log_level = os.getenv("LOG_LEVEL", "info").upper()
    level = getattr(logging, log_level, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # basicConfig is a no-op once main.py has configured the root logger.
    logging.getLogger().setLevel(level)
    logger.setLevel(level)

    cfg = load_auth_config()
    if not cfg.jwt_secret:
        raise SystemExit("JWT_SECRET is required")
    if not cfg.google_enabled:
        logger.warning("GOOGLE_CLIENT_ID/GOOGLE_CLIENT_SECRET not set; Google login will fail")

    uvicorn_log_level = (
        log_level.lower() if log_level.lower() in ["critical", "error", "warning", "info", "debug", "trace"] else "info"
    )
    listen_port = port or cfg.port
    logger.info("Starting backend on %s:%d (log_level=%s)", host, listen_port, log_level)
    uvicorn.run(create_app(auth_config=cfg), host=host, port=listen_port, log_level=uvicorn_log_level)
