"""
Transaction ledger: one immutable record per (tx_hash, log_index).

The ledger key doubles as the idempotency guard: the processor checks it
before applying any aggregation, and an existing entry is never overwritten.
"""

from __future__ import annotations

from usdfc_analytics.core.exceptions import InvalidEventError
from usdfc_analytics.database.models import Transaction
from usdfc_analytics.database.store import UnitOfWork
from usdfc_analytics.engine.context import LedgerEntry
from usdfc_analytics.ingestion.events import ChainEvent


def event_id(tx_hash: str, log_index: int) -> str:
    return f"{tx_hash.lower()}-{log_index}"


def exists(uow: UnitOfWork, tx_hash: str, log_index: int) -> bool:
    return uow.exists(Transaction, event_id(tx_hash, log_index))


def record(uow: UnitOfWork, event: ChainEvent, entry: LedgerEntry, diagnostics: list[str]) -> Transaction:
    """Write the ledger entry for an event. Raises InvalidEventError if the key is taken."""
    key = event_id(event.tx_hash, event.log_index)
    if uow.exists(Transaction, key):
        raise InvalidEventError(f"ledger entry {key} already exists", event_id=key)
    tx = Transaction(
        id=key,
        tx_hash=event.tx_hash,
        log_index=event.log_index,
        block_number=event.block_number,
        block_timestamp=event.block_timestamp,
        event_name=event.event_name,
        source_contract=event.source_contract,
        from_address=entry.from_address,
        to_address=entry.to_address,
        value=entry.value,
        category=entry.classification.category,
        ecosystem=entry.classification.ecosystem,
        transfer_type=entry.classification.transfer_type,
        source=entry.source,
        success=True,
        risk_score=entry.risk_score,
        composability_score=entry.composability_score,
        aggregation_complete=not diagnostics,
        diagnostics=list(diagnostics),
    )
    uow.put(tx)
    return tx
