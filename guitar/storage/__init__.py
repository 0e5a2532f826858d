"""User persistence: Postgres-backed store plus an in-process store for development and tests.

Postgres drivers are imported lazily so the API can start without them when no
DATABASE_URL is configured.
"""

from __future__ import annotations
