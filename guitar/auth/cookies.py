from __future__ import annotations

from guitar.auth.config import AuthConfig
from guitar.auth.tokens import REFRESH_TOKEN_TTL

STATE_COOKIE = "oauth_state"
STATE_COOKIE_PATH = "/"
STATE_TTL_SECONDS = 5 * 60

REFRESH_COOKIE = "refresh_token"
# Only the auth endpoints ever need to see the refresh token.
REFRESH_COOKIE_PATH = "/api/auth"


def _cookie_kwargs(cfg: AuthConfig, *, key: str, value: str, max_age: int, path: str) -> dict:
    return {
        "key": key,
        "value": value,
        "max_age": max_age,
        "httponly": True,
        "secure": cfg.cookie_secure,
        "samesite": "lax",
        "path": path,
    }


def state_cookie_kwargs(cfg: AuthConfig, state: str) -> dict:
    return _cookie_kwargs(cfg, key=STATE_COOKIE, value=state, max_age=STATE_TTL_SECONDS, path=STATE_COOKIE_PATH)


def clear_state_cookie_kwargs(cfg: AuthConfig) -> dict:
    return _cookie_kwargs(cfg, key=STATE_COOKIE, value="", max_age=0, path=STATE_COOKIE_PATH)


def refresh_cookie_kwargs(cfg: AuthConfig, token: str) -> dict:
    return _cookie_kwargs(
        cfg,
        key=REFRESH_COOKIE,
        value=token,
        max_age=int(REFRESH_TOKEN_TTL.total_seconds()),
        path=REFRESH_COOKIE_PATH,
    )


def clear_refresh_cookie_kwargs(cfg: AuthConfig) -> dict:
    return _cookie_kwargs(cfg, key=REFRESH_COOKIE, value="", max_age=0, path=REFRESH_COOKIE_PATH)
