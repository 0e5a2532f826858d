from __future__ import annotations

import base64
import hmac
import os


def b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def random_token(nbytes: int = 32) -> str:
    return b64url(os.urandom(nbytes))


def tokens_match(expected: str | None, presented: str | None) -> bool:
    """
    Byte-for-byte comparison of an issued nonce against the value echoed back.

    Absent or empty values on either side never match.
    """
    if not expected or not presented:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), presented.encode("utf-8"))
