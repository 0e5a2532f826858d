from __future__ import annotations

import itertools
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict

from guitar.errors import NotFound
from guitar.storage.models import User


class MemoryUserStore:
    """
    In-process user store with the same upsert semantics as the Postgres store.

    A single lock stands in for the unique index on google_id.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._users: Dict[int, User] = {}
        self._by_google_id: Dict[str, int] = {}

    def upsert_by_google_id(self, google_id: str, email: str, display_name: str, avatar_url: str) -> User:
        with self._lock:
            now = datetime.now(timezone.utc)
            existing_id = self._by_google_id.get(google_id)
            if existing_id is None:
                user = User(
                    id=next(self._ids),
                    google_id=google_id,
                    email=email,
                    display_name=display_name,
                    avatar_url=avatar_url,
                    created_at=now,
                    updated_at=now,
                )
                self._by_google_id[google_id] = user.id
            else:
                user = replace(
                    self._users[existing_id],
                    email=email,
                    display_name=display_name,
                    avatar_url=avatar_url,
                    updated_at=now,
                )
            self._users[user.id] = user
            return user

    def get_by_id(self, user_id: int) -> User:
        with self._lock:
            user = self._users.get(user_id)
        if user is None:
            raise NotFound("user not found")
        return user

    def count(self) -> int:
        with self._lock:
            return len(self._users)
