"""
Per-event handler context and the ledger entry every handler returns.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, TypeVar

import structlog

from usdfc_analytics.analytics.classifier import Classification
from usdfc_analytics.config.settings import Settings
from usdfc_analytics.core.enums import TransactionSource
from usdfc_analytics.core.exceptions import MissingRecordError
from usdfc_analytics.database.models import Record
from usdfc_analytics.database.store import UnitOfWork
from usdfc_analytics.ingestion.events import ChainEvent

R = TypeVar("R", bound=Record)


@dataclass
class EventContext:
    """Everything a handler may touch while applying one event."""

    event: ChainEvent
    uow: UnitOfWork
    settings: Settings
    log: structlog.BoundLogger
    diagnostics: list[str] = field(default_factory=list)

    @property
    def timestamp(self) -> int:
        return self.event.block_timestamp

    @property
    def block_number(self) -> int:
        return self.event.block_number

    def require(self, cls: type[R], key: str) -> R:
        """Load a record the event depends on. Raises MissingRecordError if absent."""
        record = self.uow.get(cls, key)
        if record is None:
            raise MissingRecordError(cls.kind, key)
        return record

    def warn(self, event_type: str, message: str, **context: Any) -> None:
        """Record a non-fatal aggregation gap: logged, and kept on the ledger entry."""
        self.diagnostics.append(message)
        self.log.warning(event_type, message=message, **context)


@dataclass(frozen=True)
class LedgerEntry:
    """What a handler reports back for the immutable Transaction record."""

    from_address: str
    to_address: str
    value: int
    classification: Classification
    source: TransactionSource = TransactionSource.CONTRACT_EVENT
    risk_score: Decimal = Decimal(0)
    composability_score: Decimal = Decimal(0)
