"""Session provider backed by the relational store and bearer tokens."""
from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from taskboard.core.config import settings
from taskboard.core.errors import (
    DuplicateEmailError,
    InvalidCredentialsError,
    NotFoundError,
    UnauthenticatedError,
    require_text,
)
from taskboard.db.models.auth_session import AuthSession
from taskboard.db.models.user import User
from taskboard.db.session import run_db
from taskboard.observability.metrics import log_metric
from taskboard.services.passwords import hash_password, verify_password
from taskboard.services.records import UserRecord, ensure_utc, utcnow
from taskboard.services.session.base import SessionProvider

logger = logging.getLogger(__name__)

SessionGrant = Tuple[UserRecord, str, datetime]


class SqlSessionProvider(SessionProvider):
    """Password sign-in against ``users``; each sign-in issues a row in ``auth_sessions``.

    Expiry is detected lazily: ``current_user()`` compares the stored
    ``expires_at`` with the clock, and only then forgets the session and
    emits ``None`` to ``on_change`` listeners. Nothing fires at the expiry
    instant itself; callers that hold a session open (``AppState.start``,
    the API's ``get_current_user``) go through ``current_user()``.
    """

    def __init__(self, session_factory: sessionmaker, *, ttl_minutes: Optional[int] = None) -> None:
        super().__init__()
        self._session_factory = session_factory
        self._ttl = timedelta(minutes=ttl_minutes if ttl_minutes is not None else settings.session_ttl_minutes)
        self.access_token: Optional[str] = None
        self.expires_at: Optional[datetime] = None

    # -- database work (runs on the threadpool) ---------------------------

    def _issue_token(self, db: Session, user: User) -> SessionGrant:
        token = secrets.token_urlsafe(32)
        expires_at = utcnow() + self._ttl
        db.add(AuthSession(token=token, user_id=user.id, expires_at=expires_at))
        db.commit()
        return UserRecord.model_validate(user), token, expires_at

    def _register(self, db: Session, email: str, password: str, name: str) -> SessionGrant:
        if db.scalar(select(User.id).where(User.email == email)) is not None:
            raise DuplicateEmailError(f"{email} is already registered")
        user = User(email=email, name=name, password_hash=hash_password(password))
        db.add(user)
        try:
            db.flush()
        except IntegrityError as exc:
            db.rollback()
            raise DuplicateEmailError(f"{email} is already registered") from exc
        return self._issue_token(db, user)

    def _authenticate(self, db: Session, email: str, password: str) -> SessionGrant:
        user = db.scalar(select(User).where(User.email == email))
        if user is None or not verify_password(password, user.password_hash):
            raise InvalidCredentialsError("Invalid email or password")
        return self._issue_token(db, user)

    def _lookup(self, db: Session, token: str) -> Optional[Tuple[UserRecord, datetime]]:
        row = db.get(AuthSession, token)
        if row is None:
            return None
        expires_at = ensure_utc(row.expires_at)
        if expires_at <= utcnow():
            db.delete(row)
            db.commit()
            return None
        user = db.get(User, row.user_id)
        if user is None:
            return None
        return UserRecord.model_validate(user), expires_at

    def _revoke(self, db: Session, token: str) -> None:
        row = db.get(AuthSession, token)
        if row is not None:
            db.delete(row)
            db.commit()

    def _load_user(self, db: Session, user_id) -> Optional[UserRecord]:
        user = db.get(User, user_id)
        return UserRecord.model_validate(user) if user else None

    def _apply_profile(self, db: Session, user_id, name: Optional[str], email: Optional[str]) -> UserRecord:
        user = db.get(User, user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        if name is not None:
            user.name = name
        if email is not None and email != user.email:
            taken = db.scalar(select(User.id).where(User.email == email, User.id != user_id))
            if taken is not None:
                raise DuplicateEmailError(f"{email} is already registered")
            user.email = email
        db.commit()
        return UserRecord.model_validate(user)

    # -- provider API ------------------------------------------------------

    def _accept(self, grant: SessionGrant) -> UserRecord:
        user, token, expires_at = grant
        self.access_token = token
        self.expires_at = expires_at
        self._set_user(user)
        return user

    def _forget(self) -> None:
        self.access_token = None
        self.expires_at = None
        self._set_user(None)

    async def sign_up(self, email: str, password: str, name: str) -> UserRecord:
        email, password, name = self._validate_sign_up(email, password, name)
        user = self._accept(await run_db(self._session_factory, self._register, email, password, name))
        logger.info("Registered user %s", user.id)
        log_metric("auth.sign_up", 1)
        return user

    async def sign_in(self, email: str, password: str) -> UserRecord:
        email = (email or "").strip().lower()
        try:
            grant = await run_db(self._session_factory, self._authenticate, email, password or "")
        except InvalidCredentialsError:
            logger.info("Sign-in rejected for %s", email or "<blank>")
            log_metric("auth.sign_in.rejected", 1)
            raise
        log_metric("auth.sign_in", 1)
        return self._accept(grant)

    async def restore(self, token: str) -> Optional[UserRecord]:
        """Resume the session identified by ``token``; expired or unknown tokens leave it anonymous."""
        found = await run_db(self._session_factory, self._lookup, token) if token else None
        if found is None:
            self._forget()
            return None
        user, expires_at = found
        self.access_token = token
        self.expires_at = expires_at
        self._set_user(user)
        return user

    async def sign_out(self) -> None:
        token = self.access_token
        if token:
            await run_db(self._session_factory, self._revoke, token)
        self._forget()

    async def current_user(self) -> Optional[UserRecord]:
        if self._user is not None and self.expires_at is not None and self.expires_at <= utcnow():
            logger.info("Session for user %s expired", self._user.id)
            self._forget()
        return self._user

    async def get_profile(self) -> Optional[UserRecord]:
        user = await self.current_user()
        if user is None:
            return None
        return await run_db(self._session_factory, self._load_user, user.id)

    async def update_profile(self, *, name: Optional[str] = None, email: Optional[str] = None) -> UserRecord:
        user = await self.current_user()
        if user is None:
            raise UnauthenticatedError("No active user")
        name = require_text(name, "name") if name is not None else None
        email = require_text(email, "email").lower() if email is not None else None
        self._user = await run_db(self._session_factory, self._apply_profile, user.id, name, email)
        return self._user
