"""Lazily created, process-wide Opik client."""
from __future__ import annotations

import logging
from threading import Lock
from typing import Optional

from taskboard.core.config import Settings, settings

try:
    from opik import Opik
except ImportError:  # pragma: no cover
    Opik = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)

_lock = Lock()
_client: Optional["Opik"] = None
_attempted = False


def _create_client(config: Settings) -> Optional["Opik"]:
    if not config.opik_enabled:
        logger.debug("Opik disabled; traces and metrics are log-only.")
        return None
    if not config.opik_api_key:
        logger.warning("OPIK_ENABLED is set without OPIK_API_KEY; tracing stays off.")
        return None
    try:
        client = Opik(project_name=config.opik_project, api_key=config.opik_api_key)
    except Exception as exc:  # pragma: no cover - third-party init
        logger.warning("Opik client could not be created, tracing stays off: %s", exc)
        return None
    logger.info("Opik tracing on (project=%s).", config.opik_project)
    return client


def init_opik(config: Optional[Settings] = None) -> Optional["Opik"]:
    """Create the client on the first call; every later call returns that outcome."""
    global _client, _attempted

    if Opik is None:
        return None
    with _lock:
        if not _attempted:
            _attempted = True
            _client = _create_client(config or settings)
        return _client


def get_opik_client() -> Optional["Opik"]:
    return _client if _client is not None else init_opik()


def reset_opik() -> None:
    """Flush pending traces and drop the client; the next use re-reads settings."""
    global _client, _attempted

    with _lock:
        client, _client = _client, None
        _attempted = False
    if client is None:
        return
    try:
        client.flush()
    except Exception:  # pragma: no cover - third-party flush
        logger.debug("Opik flush failed during reset", exc_info=True)
