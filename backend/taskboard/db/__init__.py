"""Database utilities and models."""

from taskboard.db.base import Base
from taskboard.db import models  # noqa: F401  (imported for side effects)

__all__ = ["Base"]
