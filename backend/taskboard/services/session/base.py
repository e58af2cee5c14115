"""Session provider interface."""
from __future__ import annotations

import logging
from typing import Callable, List, Optional

from taskboard.core.errors import require_text
from taskboard.services.records import UserRecord

logger = logging.getLogger(__name__)

SessionListener = Callable[[Optional[UserRecord]], None]


class SessionProvider:
    """Base interface for session providers.

    ``on_change`` is the only notification channel: listeners are called with
    the new user (or ``None``) whenever the active identity changes. Profile
    edits keep the identity and do not notify.
    """

    def __init__(self) -> None:
        self._user: Optional[UserRecord] = None
        self._listeners: List[SessionListener] = []

    @property
    def user(self) -> Optional[UserRecord]:
        """Last known active user, without an expiry check."""
        return self._user

    def on_change(self, callback: SessionListener) -> Callable[[], None]:
        """Register ``callback``; the returned function unsubscribes it."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _set_user(self, user: Optional[UserRecord]) -> None:
        previous_id = self._user.id if self._user else None
        self._user = user
        if previous_id != (user.id if user else None):
            self._emit(user)

    def _emit(self, user: Optional[UserRecord]) -> None:
        for callback in list(self._listeners):
            try:
                callback(user)
            except Exception:
                logger.exception("Session listener %r failed", callback)

    @staticmethod
    def _validate_sign_up(email: str, password: str, name: str) -> tuple[str, str, str]:
        email = require_text(email, "email").lower()
        require_text(password, "password")
        name = require_text(name, "name")
        return email, password, name

    async def sign_up(self, email: str, password: str, name: str) -> UserRecord:
        raise NotImplementedError

    async def sign_in(self, email: str, password: str) -> UserRecord:
        raise NotImplementedError

    async def sign_out(self) -> None:
        raise NotImplementedError

    async def current_user(self) -> Optional[UserRecord]:
        raise NotImplementedError

    async def get_profile(self) -> Optional[UserRecord]:
        raise NotImplementedError

    async def update_profile(self, *, name: Optional[str] = None, email: Optional[str] = None) -> UserRecord:
        raise NotImplementedError
