"""Column types that work on Postgres in production and SQLite in tests."""
from __future__ import annotations

from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import JSON, TypeDecorator


class JSONBCompat(TypeDecorator):
    """Audit payload column: JSONB on Postgres, plain JSON elsewhere."""

    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":  # pragma: no cover - dialect specific
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(JSON())
