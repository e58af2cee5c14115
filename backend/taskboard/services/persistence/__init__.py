"""Persistence adapters for tasks and comments."""
from taskboard.services.persistence.base import PersistenceAdapter
from taskboard.services.persistence.local import LocalPersistenceAdapter
from taskboard.services.persistence.sql import SqlPersistenceAdapter

__all__ = ["LocalPersistenceAdapter", "PersistenceAdapter", "SqlPersistenceAdapter"]
