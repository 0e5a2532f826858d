"""
Google OAuth2 login, token refresh, logout and the profile endpoint.

Login sets a short-lived anti-forgery cookie and redirects to Google; the callback
checks it against `state`, exchanges the code, upserts the user and hands the
browser back to the frontend with an access token and a refresh cookie.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse

from guitar.api.errors import error_response, log_app_error
from guitar.auth.config import AuthConfig
from guitar.auth.cookies import (
    REFRESH_COOKIE,
    STATE_COOKIE,
    clear_refresh_cookie_kwargs,
    clear_state_cookie_kwargs,
    refresh_cookie_kwargs,
    state_cookie_kwargs,
)
from guitar.auth.deps import current_user_id
from guitar.auth.google import build_authorize_url, exchange_code, fetch_profile
from guitar.auth.tokens import generate_access_token, generate_refresh_token, validate_token
from guitar.auth.util import random_token, tokens_match
from guitar.errors import AppError, BadRequest, InternalError, Unauthorized
from guitar.storage.users import UserStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth")


def _auth_config(request: Request) -> AuthConfig:
    return request.app.state.auth_config


def _user_store(request: Request) -> UserStore:
    store = getattr(request.app.state, "user_store", None)
    if store is None:
        raise InternalError("user store not initialized")
    return store


def _require_secret(cfg: AuthConfig) -> str:
    if not cfg.jwt_secret:
        raise InternalError("token signing is not configured (JWT_SECRET)")
    return cfg.jwt_secret


@router.get("/google")
async def google_login(request: Request) -> RedirectResponse:
    """Issue the anti-forgery state cookie and redirect to Google's consent screen."""
    cfg = _auth_config(request)
    state = random_token(32)
    url = build_authorize_url(cfg, state=state)

    resp = RedirectResponse(url=url, status_code=307)
    resp.headers["Cache-Control"] = "no-store"
    resp.set_cookie(**state_cookie_kwargs(cfg, state))
    return resp


def _complete_login(request: Request, cfg: AuthConfig, code: Optional[str]) -> RedirectResponse:
    if not code:
        raise BadRequest("missing authorization code")

    provider_token = exchange_code(cfg, code=code)
    profile = fetch_profile(provider_token)

    user = _user_store(request).upsert_by_google_id(profile.google_id, profile.email, profile.name, profile.picture)

    secret = _require_secret(cfg)
    access_token = generate_access_token(secret, user.id)
    refresh_token = generate_refresh_token(secret, user.id)
    logger.info("Login completed: user_id=%s", user.id)

    target = f"{cfg.frontend_url}/auth/callback?{urlencode({'token': access_token})}"
    resp = RedirectResponse(url=target, status_code=307)
    resp.headers["Cache-Control"] = "no-store"
    resp.set_cookie(**refresh_cookie_kwargs(cfg, refresh_token))
    return resp


@router.get("/google/callback")
def google_callback(
    request: Request,
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
):
    """Validate state, then exchange code -> fetch profile -> upsert -> mint tokens."""
    cfg = _auth_config(request)

    # Reject forged callbacks before talking to Google at all.
    if not tokens_match(request.cookies.get(STATE_COOKIE), state):
        raise BadRequest("invalid state")

    # The nonce is consumed: clear it on whatever response this request ends with.
    try:
        resp = _complete_login(request, cfg, code)
    except AppError as e:
        log_app_error(request, e)
        resp = error_response(e.status_code, e.message)
    resp.set_cookie(**clear_state_cookie_kwargs(cfg))
    return resp


@router.post("/refresh")
async def refresh(request: Request) -> JSONResponse:
    """
    Mint a new access token from the refresh cookie.

    The refresh token itself is not rotated; it stays valid until its own expiry.
    """
    cfg = _auth_config(request)
    token = request.cookies.get(REFRESH_COOKIE)
    if not token:
        raise Unauthorized("no refresh token")
    try:
        claims = validate_token(cfg.jwt_secret or "", token)
    except Unauthorized as e:
        raise Unauthorized("invalid refresh token") from e

    access_token = generate_access_token(_require_secret(cfg), claims.user_id)
    resp = JSONResponse(content={"access_token": access_token})
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/logout")
async def logout(request: Request) -> JSONResponse:
    # Already-issued access tokens stay valid until they expire.
    cfg = _auth_config(request)
    resp = JSONResponse(content={"status": "ok"})
    resp.headers["Cache-Control"] = "no-store"
    resp.set_cookie(**clear_refresh_cookie_kwargs(cfg))
    return resp


@router.get("/me")
def me(request: Request) -> Dict[str, Any]:
    user_id = current_user_id(request)
    return _user_store(request).get_by_id(user_id).to_json()
