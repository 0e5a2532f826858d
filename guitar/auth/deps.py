from __future__ import annotations

from typing import Optional

from fastapi import Request

from guitar.auth.tokens import validate_token
from guitar.errors import Unauthorized

BEARER_PREFIX = "Bearer "

# Paths reachable without a bearer access token.
PUBLIC_PATHS = frozenset(
    {
        "/healthz",
        "/api/health",
        "/api/auth/google",
        "/api/auth/google/callback",
        "/api/auth/refresh",
        "/api/auth/logout",
    }
)


def is_public_path(path: str) -> bool:
    return path in PUBLIC_PATHS


def authenticate_bearer(secret: Optional[str], authorization: Optional[str]) -> int:
    """
    Validate an `Authorization: Bearer <token>` header value and return the user id.

    Raises Unauthorized (never reaches the wrapped handler).
    """
    if not authorization:
        raise Unauthorized("missing authorization header")
    if not authorization.startswith(BEARER_PREFIX):
        raise Unauthorized("invalid authorization format")
    token = authorization[len(BEARER_PREFIX) :]
    try:
        claims = validate_token(secret or "", token)
    except Unauthorized as e:
        raise Unauthorized("invalid or expired token") from e
    return claims.user_id


def set_current_user_id(request: Request, user_id: int) -> None:
    request.state.user_id = user_id


def current_user_id(request: Request) -> int:
    """
    Return the user id attached by the identity middleware.

    Handlers behind the middleware can rely on it; anything else is a 401.
    """
    user_id = getattr(request.state, "user_id", None)
    if not isinstance(user_id, int):
        raise Unauthorized("unauthorized")
    return user_id
