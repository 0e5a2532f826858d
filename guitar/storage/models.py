from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict


@dataclass(frozen=True)
class User:
    """Local user record keyed by the Google account id."""

    id: int
    google_id: str
    email: str
    display_name: str
    avatar_url: str
    created_at: datetime
    updated_at: datetime

    def to_json(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "google_id": self.google_id,
            "email": self.email,
            "display_name": self.display_name,
            "avatar_url": self.avatar_url,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
