"""Request-scoped dependencies: adapters and the authenticated user."""
from __future__ import annotations

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import sessionmaker

from taskboard.core.errors import UnauthenticatedError
from taskboard.db.deps import get_sessionmaker
from taskboard.services.persistence.sql import SqlPersistenceAdapter
from taskboard.services.records import UserRecord
from taskboard.services.session.sql import SqlSessionProvider

bearer_scheme = HTTPBearer(auto_error=False)


def get_session_provider(factory: sessionmaker = Depends(get_sessionmaker)) -> SqlSessionProvider:
    return SqlSessionProvider(factory)


def get_adapter(factory: sessionmaker = Depends(get_sessionmaker)) -> SqlPersistenceAdapter:
    return SqlPersistenceAdapter(factory)


async def get_authenticated_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    provider: SqlSessionProvider = Depends(get_session_provider),
) -> SqlSessionProvider:
    """Resume the caller's session from the bearer token or reject the request."""
    if credentials is None:
        raise UnauthenticatedError("Missing bearer token")
    if await provider.restore(credentials.credentials) is None:
        raise UnauthenticatedError("Invalid or expired token")
    return provider


async def get_current_user(provider: SqlSessionProvider = Depends(get_authenticated_session)) -> UserRecord:
    user = await provider.current_user()
    if user is None:
        raise UnauthenticatedError("Session expired")
    return user
