from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

DEFAULT_PORT = 8080
DEFAULT_FRONTEND_URL = "http://localhost:5173"


@dataclass(frozen=True)
class AuthConfig:
    # Google OAuth2 client
    google_client_id: Optional[str]
    google_client_secret: Optional[str]
    google_redirect_url: str  # Default derived from PORT

    # Token signing + redirects
    jwt_secret: Optional[str]  # Required to mint/validate tokens
    frontend_url: str
    cookie_secure: bool

    port: int

    @property
    def google_enabled(self) -> bool:
        """Google login is usable once both client credentials are configured."""
        return bool(self.google_client_id and self.google_client_secret)


def _parse_port(raw: str) -> int:
    try:
        port = int(raw)
    except ValueError:
        return DEFAULT_PORT
    return port if 0 < port < 65536 else DEFAULT_PORT


@lru_cache(maxsize=1)
def load_auth_config() -> AuthConfig:
    """
    Load authentication configuration from environment variables.

    GOOGLE_REDIRECT_URL defaults to the local callback on PORT when unset.
    """
    port = _parse_port((os.getenv("PORT", "") or "").strip() or str(DEFAULT_PORT))
    frontend_url = ((os.getenv("FRONTEND_URL", "") or "").strip() or DEFAULT_FRONTEND_URL).rstrip("/")
    redirect_url = (os.getenv("GOOGLE_REDIRECT_URL", "") or "").strip() or (
        f"http://localhost:{port}/api/auth/google/callback"
    )

    cookie_secure_env = (os.getenv("AUTH_COOKIE_SECURE", "") or "").strip().lower()
    if cookie_secure_env in ("1", "true", "yes", "on"):
        cookie_secure = True
    elif cookie_secure_env in ("0", "false", "no", "off"):
        cookie_secure = False
    else:
        # Default: secure cookies when the app is served over https; otherwise allow local dev.
        cookie_secure = frontend_url.startswith("https://")

    return AuthConfig(
        google_client_id=(os.getenv("GOOGLE_CLIENT_ID", "") or "").strip() or None,
        google_client_secret=(os.getenv("GOOGLE_CLIENT_SECRET", "") or "").strip() or None,
        google_redirect_url=redirect_url,
        jwt_secret=(os.getenv("JWT_SECRET", "") or "").strip() or None,
        frontend_url=frontend_url,
        cookie_secure=cookie_secure,
        port=port,
    )
