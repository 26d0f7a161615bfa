"""Database bootstrap utilities for the survey service.

Exposes engine construction and the SQL migrations runner that creates
the schema from `app/db/migrations/`.
"""

from app.db.base import get_engine
from app.db.migrations_runner import apply_migrations

__all__ = [
    "get_engine",
    "apply_migrations",
]
