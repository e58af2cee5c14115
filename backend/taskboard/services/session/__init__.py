"""Session providers: who is the active user."""
from taskboard.services.session.base import SessionListener, SessionProvider
from taskboard.services.session.local import LocalSessionProvider
from taskboard.services.session.sql import SqlSessionProvider

__all__ = ["LocalSessionProvider", "SessionListener", "SessionProvider", "SqlSessionProvider"]
