from __future__ import annotations


class AppError(Exception):
    """
    Base class for errors surfaced to API callers.

    Each subclass carries the HTTP status it maps to; the message becomes the
    `error` field of the JSON body. None of these are retried.
    """

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BadRequest(AppError):
    """Malformed or missing OAuth state/code (client-caused)."""

    status_code = 400


class Unauthorized(AppError):
    """Missing, invalid or expired bearer/refresh token."""

    status_code = 401


class NotFound(AppError):
    """User row missing for a validated id."""

    status_code = 404


class InternalError(AppError):
    """Provider transport/parse failure, store failure or signing failure."""

    status_code = 500
