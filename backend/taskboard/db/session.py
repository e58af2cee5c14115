"""Engine and session factory built lazily from settings."""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Callable, TypeVar

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from starlette.concurrency import run_in_threadpool

from taskboard.core.config import settings
from taskboard.core.errors import PersistenceError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def build_engine(database_url: str) -> Engine:
    """Create an engine; SQLite connections get foreign keys switched on."""
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    engine = create_engine(database_url, pool_pre_ping=True, connect_args=connect_args, future=True)

    if engine.dialect.name == "sqlite":

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):  # pragma: no cover - sqlite setup
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True)


@lru_cache
def get_engine() -> Engine:
    return build_engine(settings.database_url)


@lru_cache
def get_session_factory() -> sessionmaker:
    """Return the process-wide session factory."""
    return build_session_factory(get_engine())


async def run_db(factory: sessionmaker, work: Callable[..., T], *args: Any) -> T:
    """Run ``work(db, *args)`` in a fresh session on the worker threadpool.

    SQLAlchemy failures are rolled back and re-raised as PersistenceError;
    taskboard errors raised by ``work`` pass through untouched.
    """

    def _call() -> T:
        with factory() as db:
            try:
                return work(db, *args)
            except SQLAlchemyError as exc:
                db.rollback()
                logger.warning("Database call %s failed: %s", getattr(work, "__name__", work), exc)
                raise PersistenceError(str(exc)) from exc

    return await run_in_threadpool(_call)
