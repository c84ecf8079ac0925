"""
SQLAlchemy-backed entity store.

One table, entity_records(kind, key, payload), holds every record as JSON.
Uses USDFC_DB_URL / DATABASE_URL for PostgreSQL when set; otherwise SQLite
(USDFC_DB_PATH or usdfc_analytics.db). A unit of work commits in a single
session transaction, so an event's writes land together or not at all.
"""

from __future__ import annotations

import json
import time
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, TypeVar

from sqlalchemy import BigInteger, Column, String, Text, create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from usdfc_analytics.config.env import get_database_url
from usdfc_analytics.database.models import Record
from usdfc_analytics.database.store import EntityStore
from usdfc_analytics.usdfc_logging import get_logger

logger = get_logger(__name__)

Base = declarative_base()

R = TypeVar("R", bound=Record)

# -----------------------------------------------------------------------------
# SQLAlchemy models
# -----------------------------------------------------------------------------


class EntityRow(Base):
    """
    One stored record: (kind, key) is the upsert key, payload is Record.to_dict() as JSON.
    Amounts are JSON integers, so no precision is lost on 18-decimal values.
    """

    __tablename__ = "entity_records"

    kind = Column(String(64), primary_key=True)
    key = Column(String(256), primary_key=True)
    payload = Column(Text, nullable=False)
    updated_at = Column(BigInteger, nullable=False)  # Unix timestamp

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "key": self.key,
            "payload": json.loads(self.payload),
            "updated_at": self.updated_at,
        }


# -----------------------------------------------------------------------------
# Engine and session
# -----------------------------------------------------------------------------


def _redact(url: str) -> str:
    return url.split("?")[0].split("//")[-1].split("@")[-1]


class SqlEntityStore(EntityStore):
    """EntityStore on a SQLAlchemy engine. Call init_db() once before use."""

    def __init__(self, url: str | None = None) -> None:
        self.url = url or get_database_url()
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None

    def _get_engine(self) -> Engine:
        """Create or return cached engine."""
        if self._engine is None:
            connect_args = {}
            if self.url.startswith("sqlite"):
                connect_args["check_same_thread"] = False
            self._engine = create_engine(self.url, connect_args=connect_args, pool_pre_ping=True)
            logger.info("entity_store_engine", url=_redact(self.url))
        return self._engine

    def _get_session_factory(self) -> sessionmaker:
        if self._session_factory is None:
            self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self._get_engine())
        return self._session_factory

    @contextmanager
    def _session_scope(self) -> Iterator[Session]:
        """Context manager for a single session. Commits on success, rolls back on error."""
        session = self._get_session_factory()()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def init_db(self) -> None:
        """Create the entity table if it does not exist. Safe to call on every startup."""
        try:
            Base.metadata.create_all(bind=self._get_engine())
            logger.info("entity_store_init_db", url=_redact(self.url))
        except Exception as e:
            logger.exception("entity_store_init_db_failed", error=str(e))
            raise

    def dispose(self) -> None:
        """Release pooled connections."""
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._session_factory = None

    def load(self, cls: type[R], key: str) -> R | None:
        with self._session_scope() as session:
            row = session.get(EntityRow, (cls.kind, key))
            if row is None:
                return None
            return cls.from_dict(json.loads(row.payload))

    def save_all(self, records: Iterable[Record]) -> None:
        now = int(time.time())
        records = list(records)
        if not records:
            return
        with self._session_scope() as session:
            for record in records:
                session.merge(
                    EntityRow(
                        kind=record.kind,
                        key=record.key,
                        payload=json.dumps(record.to_dict(), sort_keys=True),
                        updated_at=now,
                    )
                )
        logger.debug("entity_store_saved", count=len(records))

    def all(self, cls: type[R]) -> list[R]:
        with self._session_scope() as session:
            rows = session.scalars(
                select(EntityRow).where(EntityRow.kind == cls.kind).order_by(EntityRow.key)
            ).all()
            return [cls.from_dict(json.loads(row.payload)) for row in rows]
