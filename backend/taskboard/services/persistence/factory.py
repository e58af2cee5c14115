"""Persistence backend factory."""
from __future__ import annotations

from typing import Optional, Tuple

from sqlalchemy.orm import sessionmaker

from taskboard.core.config import Settings, settings as default_settings
from taskboard.db.session import get_session_factory
from taskboard.services.local_storage import LocalStorage
from taskboard.services.persistence.base import PersistenceAdapter
from taskboard.services.persistence.local import LocalPersistenceAdapter
from taskboard.services.persistence.sql import SqlPersistenceAdapter
from taskboard.services.session.base import SessionProvider
from taskboard.services.session.local import LocalSessionProvider
from taskboard.services.session.sql import SqlSessionProvider


def build_backend(
    config: Optional[Settings] = None,
    *,
    session_factory: Optional[sessionmaker] = None,
    storage: Optional[LocalStorage] = None,
) -> Tuple[SessionProvider, PersistenceAdapter]:
    """Return a matching (session provider, persistence adapter) pair for ``persistence_backend``."""
    config = config or default_settings
    backend = config.persistence_backend.lower()
    if backend == "local":
        storage = storage or LocalStorage(config.local_storage_path)
        return LocalSessionProvider(storage), LocalPersistenceAdapter(storage)
    if backend == "sql":
        factory = session_factory or get_session_factory()
        return SqlSessionProvider(factory, ttl_minutes=config.session_ttl_minutes), SqlPersistenceAdapter(factory)
    raise ValueError(f"Unknown persistence backend: {config.persistence_backend!r}")
