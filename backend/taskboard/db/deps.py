"""FastAPI dependencies for database access."""
from __future__ import annotations

from sqlalchemy.orm import sessionmaker

from taskboard.db.session import get_session_factory


def get_sessionmaker() -> sessionmaker:
    """Session factory used by request handlers; overridden in tests."""
    return get_session_factory()
