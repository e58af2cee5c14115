"""Application state: one session, one store, one board."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from taskboard.core.config import Settings
from taskboard.services.board import BoardController
from taskboard.services.persistence.base import PersistenceAdapter
from taskboard.services.persistence.factory import build_backend
from taskboard.services.records import UserRecord
from taskboard.services.session.base import SessionProvider
from taskboard.services.store import TaskStore

logger = logging.getLogger(__name__)


class AppState:
    """Keeps the store in step with the session.

    Signing in (or switching user) reloads the store for the new user;
    signing out or session expiry empties it. Only the most recent reload
    is kept when identity changes in quick succession.
    """

    def __init__(self, session: SessionProvider, adapter: PersistenceAdapter) -> None:
        self.session = session
        self.store = TaskStore(adapter)
        self.board = BoardController(self.store)
        self._pending: Optional[asyncio.Task] = None
        self._unsubscribe = session.on_change(self._on_session_change)

    def _on_session_change(self, user: Optional[UserRecord]) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None
        # Nothing of the previous user may stay visible or writable.
        self.store.clear()

        if user is None:
            logger.info("Session ended; store cleared")
            return

        logger.info("Session started for %s; loading store", user.id)
        self._pending = asyncio.get_running_loop().create_task(self.store.load(user.id))

    async def start(self) -> Optional[UserRecord]:
        """Load the store for a session that was already active at startup."""
        user = await self.session.current_user()
        if user is not None and self.store.owner_id != user.id:
            await self.store.load(user.id)
        return user

    async def ready(self) -> None:
        """Wait for the reload triggered by the latest session change."""
        pending = self._pending
        while pending is not None:
            try:
                await pending
            except asyncio.CancelledError:
                if not pending.cancelled():
                    raise
            if pending is self._pending:
                return
            pending = self._pending

    def close(self) -> None:
        self._unsubscribe()
        self.board.close()
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()


def create_app_state(config: Optional[Settings] = None, **backend_kwargs) -> AppState:
    session, adapter = build_backend(config, **backend_kwargs)
    return AppState(session, adapter)
