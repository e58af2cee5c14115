from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from taskboard.core.errors import DuplicateEmailError, InvalidCredentialsError, UnauthenticatedError, ValidationError
from taskboard.db.models.auth_session import AuthSession
from taskboard.db.models.user import User
from taskboard.services.records import utcnow
from taskboard.services.session.sql import SqlSessionProvider


def test_sign_up_stores_hashed_password_and_issues_token(session_factory) -> None:
    provider = SqlSessionProvider(session_factory)

    user = asyncio.run(provider.sign_up("ann@example.com", "s3cret", "Ann"))

    assert provider.access_token
    assert provider.expires_at > utcnow()
    with session_factory() as db:
        row = db.get(User, user.id)
        assert row.password_hash != "s3cret"
        assert db.get(AuthSession, provider.access_token).user_id == user.id


def test_sign_up_validation_and_duplicates(session_factory) -> None:
    provider = SqlSessionProvider(session_factory)
    asyncio.run(provider.sign_up("ann@example.com", "pw", "Ann"))

    with pytest.raises(ValidationError):
        asyncio.run(provider.sign_up("bob@example.com", "pw", " "))
    with pytest.raises(DuplicateEmailError):
        asyncio.run(SqlSessionProvider(session_factory).sign_up("Ann@example.com", "pw", "Ann 2"))


def test_sign_in_with_bad_password_fails(session_factory) -> None:
    asyncio.run(SqlSessionProvider(session_factory).sign_up("ann@example.com", "pw", "Ann"))
    provider = SqlSessionProvider(session_factory)

    with pytest.raises(InvalidCredentialsError):
        asyncio.run(provider.sign_in("ann@example.com", "nope"))
    with pytest.raises(InvalidCredentialsError):
        asyncio.run(provider.sign_in("nobody@example.com", "pw"))
    assert asyncio.run(provider.current_user()) is None


def test_restore_resumes_session_from_token(session_factory) -> None:
    first = SqlSessionProvider(session_factory)
    user = asyncio.run(first.sign_up("ann@example.com", "pw", "Ann"))

    second = SqlSessionProvider(session_factory)
    seen = []
    second.on_change(seen.append)

    assert asyncio.run(second.restore(first.access_token)) == user
    assert seen == [user]
    assert asyncio.run(second.restore("bogus")) is None
    assert seen == [user, None]


def test_sign_out_revokes_token(session_factory) -> None:
    provider = SqlSessionProvider(session_factory)
    asyncio.run(provider.sign_up("ann@example.com", "pw", "Ann"))
    token = provider.access_token

    asyncio.run(provider.sign_out())

    assert provider.access_token is None
    assert asyncio.run(provider.current_user()) is None
    assert asyncio.run(SqlSessionProvider(session_factory).restore(token)) is None


def test_expired_token_is_deleted_on_restore(session_factory) -> None:
    provider = SqlSessionProvider(session_factory, ttl_minutes=0)
    asyncio.run(provider.sign_up("ann@example.com", "pw", "Ann"))
    token = provider.access_token

    assert asyncio.run(SqlSessionProvider(session_factory).restore(token)) is None
    with session_factory() as db:
        assert db.get(AuthSession, token) is None


def test_current_user_notices_expiry(session_factory) -> None:
    provider = SqlSessionProvider(session_factory)
    asyncio.run(provider.sign_up("ann@example.com", "pw", "Ann"))
    seen = []
    provider.on_change(seen.append)

    provider.expires_at = utcnow() - timedelta(seconds=1)

    assert asyncio.run(provider.current_user()) is None
    assert seen == [None]


def test_profile_read_and_update(session_factory) -> None:
    asyncio.run(SqlSessionProvider(session_factory).sign_up("bob@example.com", "pw", "Bob"))
    provider = SqlSessionProvider(session_factory)
    asyncio.run(provider.sign_up("ann@example.com", "pw", "Ann"))

    updated = asyncio.run(provider.update_profile(name="Annie", email="ANNIE@example.com"))

    assert updated.name == "Annie"
    assert updated.email == "annie@example.com"
    assert asyncio.run(provider.get_profile()) == updated
    with pytest.raises(DuplicateEmailError):
        asyncio.run(provider.update_profile(email="bob@example.com"))


def test_profile_requires_session(session_factory) -> None:
    provider = SqlSessionProvider(session_factory)

    assert asyncio.run(provider.get_profile()) is None
    with pytest.raises(UnauthenticatedError):
        asyncio.run(provider.update_profile(name="Ghost"))
