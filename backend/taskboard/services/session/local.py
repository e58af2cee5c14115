"""Session provider backed by local storage (multi-user switching)."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from taskboard.core.errors import (
    DuplicateEmailError,
    InvalidCredentialsError,
    NotFoundError,
    UnauthenticatedError,
    require_text,
)
from taskboard.services.local_storage import CURRENT_USER_KEY, USERS_KEY, LocalStorage
from taskboard.services.passwords import hash_password, verify_password
from taskboard.services.records import UserRecord, utcnow
from taskboard.services.session.base import SessionProvider

logger = logging.getLogger(__name__)


class LocalSessionProvider(SessionProvider):
    """Users live in the ``users`` entry; the active id in ``currentUser``."""

    def __init__(self, storage: LocalStorage) -> None:
        super().__init__()
        self.storage = storage
        current_id = storage.load_json(CURRENT_USER_KEY, None)
        row = self._find(lambda r: r["id"] == current_id) if current_id else None
        self._user = self._to_record(row) if row else None

    def _rows(self) -> List[Dict[str, Any]]:
        return list(self.storage.load_json(USERS_KEY, []))

    def _find(self, predicate) -> Optional[Dict[str, Any]]:
        return next((row for row in self._rows() if predicate(row)), None)

    @staticmethod
    def _to_record(row: Dict[str, Any]) -> UserRecord:
        return UserRecord(id=row["id"], name=row["name"], email=row["email"])

    def _activate(self, user: UserRecord) -> None:
        self.storage.save_json(CURRENT_USER_KEY, str(user.id))
        self._set_user(user)

    async def sign_up(self, email: str, password: str, name: str) -> UserRecord:
        email, password, name = self._validate_sign_up(email, password, name)
        rows = self._rows()
        if any(row["email"] == email for row in rows):
            raise DuplicateEmailError(f"{email} is already registered")

        row = {
            "id": str(uuid4()),
            "name": name,
            "email": email,
            "password_hash": hash_password(password),
            "created_at": utcnow().isoformat(),
        }
        rows.append(row)
        self.storage.save_json(USERS_KEY, rows)
        user = self._to_record(row)
        logger.info("Registered local user %s", user.id)
        self._activate(user)
        return user

    async def sign_in(self, email: str, password: str) -> UserRecord:
        email = (email or "").strip().lower()
        row = self._find(lambda r: r["email"] == email)
        if row is None or not verify_password(password or "", row.get("password_hash", "")):
            logger.info("Local sign-in rejected for %s", email or "<blank>")
            raise InvalidCredentialsError("Invalid email or password")
        user = self._to_record(row)
        self._activate(user)
        return user

    async def switch_user(self, user_id: UUID | str) -> UserRecord:
        """Make another registered local user the active one."""
        row = self._find(lambda r: r["id"] == str(user_id))
        if row is None:
            raise NotFoundError(f"User {user_id} not found")
        user = self._to_record(row)
        self._activate(user)
        return user

    async def list_users(self) -> List[UserRecord]:
        return [self._to_record(row) for row in self._rows()]

    async def sign_out(self) -> None:
        self.storage.remove_item(CURRENT_USER_KEY)
        self._set_user(None)

    async def current_user(self) -> Optional[UserRecord]:
        return self._user

    async def get_profile(self) -> Optional[UserRecord]:
        return self._user

    async def update_profile(self, *, name: Optional[str] = None, email: Optional[str] = None) -> UserRecord:
        if self._user is None:
            raise UnauthenticatedError("No active user")
        rows = self._rows()
        row = next((r for r in rows if r["id"] == str(self._user.id)), None)
        if row is None:
            raise NotFoundError(f"User {self._user.id} not found")

        if name is not None:
            row["name"] = require_text(name, "name")
        if email is not None:
            new_email = require_text(email, "email").lower()
            if any(r["email"] == new_email and r["id"] != row["id"] for r in rows):
                raise DuplicateEmailError(f"{new_email} is already registered")
            row["email"] = new_email

        self.storage.save_json(USERS_KEY, rows)
        self._user = self._to_record(row)
        return self._user
