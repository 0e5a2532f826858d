from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from guitar.errors import AppError

logger = logging.getLogger(__name__)


def error_response(status_code: int, message: str) -> JSONResponse:
    resp = JSONResponse(status_code=status_code, content={"error": message})
    resp.headers["Cache-Control"] = "no-store"
    return resp


def log_app_error(request: Request, exc: AppError) -> None:
    log_fn = logger.error if exc.status_code >= 500 else logger.warning
    log_fn("%s %s - %d %s", request.method, request.url.path, exc.status_code, exc.message)


def register_exception_handlers(app: FastAPI) -> None:
    """Render every error as `{"error": "..."}` with the matching status code."""

    @app.exception_handler(AppError)
    async def _handle_app_error(request: Request, exc: AppError) -> JSONResponse:
        log_app_error(request, exc)
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def _handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # IMPORTANT: never emit `WWW-Authenticate`; browsers would pop a basic-auth modal.
        return error_response(exc.status_code, str(exc.detail).lower())
