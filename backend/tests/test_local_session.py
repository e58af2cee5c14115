from __future__ import annotations

import asyncio

import pytest

from taskboard.core.errors import (
    DuplicateEmailError,
    InvalidCredentialsError,
    NotFoundError,
    UnauthenticatedError,
    ValidationError,
)
from taskboard.services.local_storage import LocalStorage
from taskboard.services.session.local import LocalSessionProvider


def test_sign_up_activates_user_and_notifies(storage) -> None:
    provider = LocalSessionProvider(storage)
    seen = []
    provider.on_change(seen.append)

    user = asyncio.run(provider.sign_up("Ann@Example.com ", "pw", " Ann "))

    assert user.email == "ann@example.com"
    assert user.name == "Ann"
    assert asyncio.run(provider.current_user()) == user
    assert seen == [user]


@pytest.mark.parametrize(
    "email, password, name",
    [("", "pw", "Ann"), ("ann@example.com", "  ", "Ann"), ("ann@example.com", "pw", "")],
)
def test_sign_up_rejects_blank_fields(storage, email, password, name) -> None:
    provider = LocalSessionProvider(storage)

    with pytest.raises(ValidationError):
        asyncio.run(provider.sign_up(email, password, name))


def test_duplicate_email_rejected(storage) -> None:
    provider = LocalSessionProvider(storage)
    asyncio.run(provider.sign_up("ann@example.com", "pw", "Ann"))

    with pytest.raises(DuplicateEmailError):
        asyncio.run(provider.sign_up("ANN@example.com", "other", "Annie"))


def test_sign_in_checks_password(storage) -> None:
    provider = LocalSessionProvider(storage)
    asyncio.run(provider.sign_up("ann@example.com", "pw", "Ann"))
    asyncio.run(provider.sign_out())

    with pytest.raises(InvalidCredentialsError):
        asyncio.run(provider.sign_in("ann@example.com", "wrong"))
    assert asyncio.run(provider.current_user()) is None

    user = asyncio.run(provider.sign_in("ann@example.com", "pw"))
    assert user.name == "Ann"


def test_sign_out_clears_and_notifies(storage) -> None:
    provider = LocalSessionProvider(storage)
    asyncio.run(provider.sign_up("ann@example.com", "pw", "Ann"))
    seen = []
    provider.on_change(seen.append)

    asyncio.run(provider.sign_out())

    assert seen == [None]
    assert asyncio.run(provider.current_user()) is None
    assert LocalSessionProvider(storage).user is None


def test_active_user_restored_from_storage(tmp_path) -> None:
    path = tmp_path / "storage.json"
    provider = LocalSessionProvider(LocalStorage(path))
    user = asyncio.run(provider.sign_up("ann@example.com", "pw", "Ann"))

    restored = LocalSessionProvider(LocalStorage(path))

    assert asyncio.run(restored.current_user()) == user


def test_switch_user_between_registered_users(storage) -> None:
    provider = LocalSessionProvider(storage)
    ann = asyncio.run(provider.sign_up("ann@example.com", "pw", "Ann"))
    bob = asyncio.run(provider.sign_up("bob@example.com", "pw", "Bob"))
    seen = []
    provider.on_change(seen.append)

    asyncio.run(provider.switch_user(ann.id))

    assert asyncio.run(provider.current_user()) == ann
    assert seen == [ann]
    assert {u.name for u in asyncio.run(provider.list_users())} == {"Ann", "Bob"}
    with pytest.raises(NotFoundError):
        asyncio.run(provider.switch_user("missing"))
    assert bob in asyncio.run(provider.list_users())


def test_update_profile_keeps_identity(storage) -> None:
    provider = LocalSessionProvider(storage)
    asyncio.run(provider.sign_up("ann@example.com", "pw", "Ann"))
    asyncio.run(provider.sign_up("bob@example.com", "pw", "Bob"))
    seen = []
    provider.on_change(seen.append)

    updated = asyncio.run(provider.update_profile(name="Bobby"))

    assert updated.name == "Bobby"
    assert seen == []
    with pytest.raises(DuplicateEmailError):
        asyncio.run(provider.update_profile(email="ann@example.com"))
    with pytest.raises(ValidationError):
        asyncio.run(provider.update_profile(name="  "))


def test_update_profile_requires_session(storage) -> None:
    provider = LocalSessionProvider(storage)

    with pytest.raises(UnauthenticatedError):
        asyncio.run(provider.update_profile(name="Ghost"))


def test_unsubscribe_stops_notifications(storage) -> None:
    provider = LocalSessionProvider(storage)
    seen = []
    unsubscribe = provider.on_change(seen.append)
    unsubscribe()

    asyncio.run(provider.sign_up("ann@example.com", "pw", "Ann"))

    assert seen == []


def test_failing_listener_does_not_break_sign_in(storage) -> None:
    provider = LocalSessionProvider(storage)

    def broken(user):
        raise RuntimeError("listener bug")

    seen = []
    provider.on_change(broken)
    provider.on_change(seen.append)

    user = asyncio.run(provider.sign_up("ann@example.com", "pw", "Ann"))

    assert seen == [user]
