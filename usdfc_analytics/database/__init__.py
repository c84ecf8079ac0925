"""
Entity storage: record dataclasses, the EntityStore interface with atomic units
of work, an in-memory backend and a SQLAlchemy backend.
"""

from usdfc_analytics.database.models import RECORD_TYPES, Record
from usdfc_analytics.database.store import EntityStore, InMemoryStore, UnitOfWork

__all__ = ["RECORD_TYPES", "EntityStore", "InMemoryStore", "Record", "UnitOfWork"]
