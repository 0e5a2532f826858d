"""
Access and refresh tokens.

Both token types are HS256 JWTs carrying only `sub` (internal user id), `iat`
and `exp`. They differ solely in lifetime; validation does not tell them apart,
the caller knows which one it expected.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt  # PyJWT

from guitar.errors import InternalError, Unauthorized

ACCESS_TOKEN_TTL = timedelta(minutes=15)
REFRESH_TOKEN_TTL = timedelta(days=7)

_ALGORITHM = "HS256"


class TokenErrorKind(str, enum.Enum):
    INVALID_SIGNATURE = "invalid_signature"
    EXPIRED = "expired"


class TokenError(Unauthorized):
    def __init__(self, kind: TokenErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    issued_at: datetime
    expires_at: datetime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _generate(secret: str, user_id: int, ttl: timedelta, now: Optional[datetime]) -> str:
    if not secret:
        raise InternalError("token signing secret is not configured")
    issued = now or _utcnow()
    payload = {
        # RFC 7519 wants a string subject; PyJWT enforces it on decode.
        "sub": str(int(user_id)),
        "iat": int(issued.timestamp()),
        "exp": int((issued + ttl).timestamp()),
    }
    try:
        return jwt.encode(payload, secret, algorithm=_ALGORITHM)
    except Exception as e:
        raise InternalError(f"failed to sign token: {e}") from e


def generate_access_token(secret: str, user_id: int, *, now: Optional[datetime] = None) -> str:
    return _generate(secret, user_id, ACCESS_TOKEN_TTL, now)


def generate_refresh_token(secret: str, user_id: int, *, now: Optional[datetime] = None) -> str:
    return _generate(secret, user_id, REFRESH_TOKEN_TTL, now)


def validate_token(secret: str, token: str, *, now: Optional[datetime] = None) -> TokenClaims:
    """
    Verify signature and expiry and return the claims.

    Raises TokenError with kind EXPIRED for a correctly signed but expired token,
    INVALID_SIGNATURE for everything else (bad signature, wrong algorithm,
    malformed token, missing claims).
    """
    if not secret:
        raise TokenError(TokenErrorKind.INVALID_SIGNATURE, "token signing secret is not configured")

    options = {"require": ["sub", "iat", "exp"]}
    if now is not None:
        # PyJWT checks exp against the wall clock; with an explicit `now` we check it ourselves.
        options["verify_exp"] = False
    try:
        claims = jwt.decode(token, secret, algorithms=[_ALGORITHM], options=options)
    except jwt.ExpiredSignatureError as e:
        raise TokenError(TokenErrorKind.EXPIRED, "token expired") from e
    except jwt.InvalidTokenError as e:
        raise TokenError(TokenErrorKind.INVALID_SIGNATURE, "invalid token") from e

    try:
        user_id = int(claims["sub"])
        issued_at = datetime.fromtimestamp(int(claims["iat"]), tz=timezone.utc)
        expires_at = datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc)
    except (TypeError, ValueError) as e:
        raise TokenError(TokenErrorKind.INVALID_SIGNATURE, "invalid token claims") from e

    if now is not None and now >= expires_at:
        raise TokenError(TokenErrorKind.EXPIRED, "token expired")

    return TokenClaims(user_id=user_id, issued_at=issued_at, expires_at=expires_at)
