"""
Entity store abstraction: upsert-by-key persistence with one atomic unit of work per event.

All access goes through EntityStore; the in-memory backend serves tests and
replays, the SQLAlchemy backend (sql_store) persists to SQLite or PostgreSQL.
Reads inside a unit of work return detached copies, so mutating a record never
touches committed state until the unit commits.
"""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterable, Iterator, TypeVar

from usdfc_analytics.database.models import Record
from usdfc_analytics.usdfc_logging import get_logger

logger = get_logger(__name__)

R = TypeVar("R", bound=Record)


class UnitOfWork:
    """
    Buffered reads and writes for one event.

    get() caches what it loads so repeated reads in the same unit see the
    same object; put() marks a record dirty. Nothing reaches the backend
    until the owning store commits the unit.
    """

    def __init__(self, store: EntityStore) -> None:
        self._store = store
        self._cache: dict[tuple[str, str], Record | None] = {}
        self._dirty: dict[tuple[str, str], Record] = {}

    def get(self, cls: type[R], key: str) -> R | None:
        ref = (cls.kind, key)
        if ref not in self._cache:
            self._cache[ref] = self._store.load(cls, key)
        return self._cache[ref]  # type: ignore[return-value]

    def exists(self, cls: type[Record], key: str) -> bool:
        return self.get(cls, key) is not None

    def put(self, record: Record) -> None:
        ref = (record.kind, record.key)
        self._cache[ref] = record
        self._dirty[ref] = record

    def dirty_records(self) -> list[Record]:
        """Records written in this unit, in first-write order."""
        return list(self._dirty.values())


class EntityStore(ABC):
    """Abstract backend. Subclasses implement load/save/iteration; unit_of_work is shared."""

    @abstractmethod
    def load(self, cls: type[R], key: str) -> R | None:
        """Return a detached copy of the record, or None."""

    @abstractmethod
    def save_all(self, records: Iterable[Record]) -> None:
        """Persist records atomically: all or none."""

    @abstractmethod
    def all(self, cls: type[R]) -> list[R]:
        """Every record of a kind, ordered by key."""

    def get(self, cls: type[R], key: str) -> R | None:
        return self.load(cls, key)

    def count(self, cls: type[Record]) -> int:
        return len(self.all(cls))

    @contextmanager
    def unit_of_work(self) -> Iterator[UnitOfWork]:
        """Yield a unit of work; commit its writes on success, discard them on error."""
        uow = UnitOfWork(self)
        try:
            yield uow
        except Exception:
            logger.debug("unit_of_work_discarded", pending=len(uow.dirty_records()))
            raise
        self.save_all(uow.dirty_records())


class InMemoryStore(EntityStore):
    """Dict-backed store. Records are deep-copied in and out."""

    def __init__(self) -> None:
        self._data: dict[str, dict[str, Record]] = {}

    def load(self, cls: type[R], key: str) -> R | None:
        record = self._data.get(cls.kind, {}).get(key)
        return copy.deepcopy(record) if record is not None else None  # type: ignore[return-value]

    def save_all(self, records: Iterable[Record]) -> None:
        staged = [(r.kind, r.key, copy.deepcopy(r)) for r in records]
        for kind, key, record in staged:
            self._data.setdefault(kind, {})[key] = record

    def all(self, cls: type[R]) -> list[R]:
        bucket = self._data.get(cls.kind, {})
        return [copy.deepcopy(bucket[k]) for k in sorted(bucket)]  # type: ignore[misc]
