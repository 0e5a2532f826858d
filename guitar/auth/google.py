from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict
from urllib.parse import urlencode

import requests

from guitar.auth.config import AuthConfig
from guitar.errors import BadRequest, InternalError

logger = logging.getLogger(__name__)

AUTHORIZATION_ENDPOINT = "https://accounts.google.com/o/oauth2/auth"
TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"
USERINFO_ENDPOINT = "https://www.googleapis.com/oauth2/v2/userinfo"

SCOPES = ("openid", "email", "profile")
HTTP_TIMEOUT_SECONDS = 10


@dataclass(frozen=True)
class GoogleProfile:
    """Identity fields read from Google's userinfo endpoint."""

    google_id: str
    email: str
    name: str
    picture: str


def build_authorize_url(cfg: AuthConfig, *, state: str) -> str:
    """
    Build the Google consent-screen URL.

    Requests offline access so Google also issues a provider refresh token.
    """
    if not cfg.google_client_id:
        raise InternalError("Google client ID not configured")

    params = {
        "access_type": "offline",
        "client_id": cfg.google_client_id,
        "redirect_uri": cfg.google_redirect_url,
        "response_type": "code",
        "scope": " ".join(SCOPES),
        "state": state,
    }
    return f"{AUTHORIZATION_ENDPOINT}?{urlencode(params)}"


def exchange_code(cfg: AuthConfig, *, code: str) -> str:
    """
    Trade an authorization code for a Google access token.

    Codes are single-use, so every failure is reported as BadRequest and never retried.
    """
    if not cfg.google_client_id or not cfg.google_client_secret:
        raise InternalError("Google client ID/secret not configured")

    payload = {
        "client_id": cfg.google_client_id,
        "client_secret": cfg.google_client_secret,
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": cfg.google_redirect_url,
    }
    try:
        r = requests.post(TOKEN_ENDPOINT, data=payload, timeout=HTTP_TIMEOUT_SECONDS)
    except requests.RequestException as e:
        logger.warning("Google token exchange transport error: %s", type(e).__name__)
        raise BadRequest("failed to exchange token") from e
    if r.status_code >= 400:
        # Avoid leaking sensitive info; include minimal context.
        logger.warning("Google token exchange failed (status=%s)", r.status_code)
        raise BadRequest("failed to exchange token")
    try:
        data = r.json()
    except ValueError as e:
        raise BadRequest("failed to exchange token") from e
    token = str(data.get("access_token") or "").strip() if isinstance(data, dict) else ""
    if not token:
        raise BadRequest("failed to exchange token")
    return token


def _parse_profile(data: Any) -> GoogleProfile:
    if not isinstance(data, dict):
        raise ValueError("userinfo is not an object")
    google_id = str(data.get("id") or "").strip()
    if not google_id:
        raise ValueError("userinfo missing id")
    return GoogleProfile(
        google_id=google_id,
        email=str(data.get("email") or ""),
        name=str(data.get("name") or ""),
        picture=str(data.get("picture") or ""),
    )


def fetch_profile(access_token: str) -> GoogleProfile:
    """
    Fetch the signed-in user's id, email, name and avatar.

    Transport and parse failures are InternalError: it is unclear whether the
    caller or Google is at fault, and retrying within the request would not help.
    """
    headers: Dict[str, str] = {"Authorization": f"Bearer {access_token}"}
    try:
        r = requests.get(USERINFO_ENDPOINT, headers=headers, timeout=HTTP_TIMEOUT_SECONDS)
    except requests.RequestException as e:
        logger.warning("Google userinfo transport error: %s", type(e).__name__)
        raise InternalError("failed to get user info") from e
    if r.status_code >= 400:
        logger.warning("Google userinfo failed (status=%s)", r.status_code)
        raise InternalError("failed to get user info")
    try:
        return _parse_profile(r.json())
    except ValueError as e:
        raise InternalError("failed to parse user info") from e
