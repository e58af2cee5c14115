"""Housekeeping jobs for the relational backend."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.orm import Session

from taskboard.db.models.auth_session import AuthSession
from taskboard.observability.metrics import log_metric
from taskboard.services.records import utcnow

logger = logging.getLogger(__name__)


@dataclass
class PurgeResult:
    sessions_removed: int
    cutoff: datetime


def purge_expired_sessions(db: Session, *, now: Optional[datetime] = None) -> PurgeResult:
    """Delete auth sessions whose expiry is at or before ``now``."""
    cutoff = now or utcnow()
    removed = db.execute(delete(AuthSession).where(AuthSession.expires_at <= cutoff)).rowcount or 0
    db.commit()
    logger.info("Purged %s expired session(s) (cutoff=%s)", removed, cutoff.isoformat())
    log_metric("auth.sessions.purged", removed)
    return PurgeResult(sessions_removed=removed, cutoff=cutoff)
