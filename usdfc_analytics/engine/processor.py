"""
Event processor: the single entry point that applies chain events to the store.

Per event:
1. Validate the envelope and the event-specific params (before any state is touched).
2. Open a unit of work; a ledger entry under the same (tx_hash, log_index)
   means the event was already applied -> DUPLICATE, nothing written.
3. Run the one handler registered for the event name.
4. Write the ledger entry and commit every record the handler staged.

Invalid and unknown events are SKIPPED with a diagnostic. ConfigurationError
propagates: the unit of work is discarded and the caller sees the error.
"""

from __future__ import annotations

import functools
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from pydantic import BaseModel

from usdfc_analytics.analytics.classifier import Classification
from usdfc_analytics.config.settings import Settings, get_settings
from usdfc_analytics.core.enums import BridgeStatus, EventName, ProcessStatus, TradeType
from usdfc_analytics.core.exceptions import ConfigurationError, InvalidEventError
from usdfc_analytics.database.store import EntityStore
from usdfc_analytics.engine import ecosystem, ledger, market, stability, staking, stats, transfers, troves
from usdfc_analytics.engine.context import EventContext, LedgerEntry
from usdfc_analytics.ingestion import events as ev
from usdfc_analytics.usdfc_logging import bind_event, get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class EventHandler:
    """Parameter model plus the function that applies the validated event."""

    params_model: type[BaseModel]
    apply: Callable[[EventContext, Any], LedgerEntry]


HANDLERS: dict[str, EventHandler] = {
    EventName.TRANSFER.value: EventHandler(ev.TransferParams, transfers.handle_transfer),
    EventName.TROVE_UPDATED.value: EventHandler(ev.TroveUpdatedParams, troves.handle_trove_updated),
    EventName.TROVE_LIQUIDATED.value: EventHandler(ev.TroveLiquidatedParams, troves.handle_trove_liquidated),
    EventName.LIQUIDATION.value: EventHandler(ev.LiquidationParams, troves.handle_liquidation),
    EventName.REDEMPTION.value: EventHandler(ev.RedemptionParams, troves.handle_redemption),
    EventName.USER_DEPOSIT_CHANGED.value: EventHandler(ev.DepositChangedParams, stability.handle_deposit_changed),
    EventName.STABILITY_GAINS_WITHDRAWN.value: EventHandler(
        ev.StabilityGainsParams, stability.handle_gains_withdrawn
    ),
    EventName.STAKE_CHANGED.value: EventHandler(ev.StakeChangedParams, staking.handle_stake_changed),
    EventName.STAKING_GAINS_WITHDRAWN.value: EventHandler(ev.StakingGainsParams, staking.handle_gains_withdrawn),
    EventName.LAST_GOOD_PRICE_UPDATED.value: EventHandler(ev.PriceUpdatedParams, market.handle_price_updated),
    EventName.SWAP.value: EventHandler(ev.SwapParams, ecosystem.handle_swap),
    EventName.POOL_MINT.value: EventHandler(
        ev.PoolLiquidityParams,
        functools.partial(ecosystem.handle_pool_liquidity, trade_type=TradeType.ADD_LIQUIDITY),
    ),
    EventName.POOL_BURN.value: EventHandler(
        ev.PoolLiquidityParams,
        functools.partial(ecosystem.handle_pool_liquidity, trade_type=TradeType.REMOVE_LIQUIDITY),
    ),
    EventName.CONTRACT_CALL.value: EventHandler(
        ev.BridgeCallParams, functools.partial(ecosystem.handle_bridge_call, status=BridgeStatus.INITIATED)
    ),
    EventName.CONTRACT_CALL_WITH_TOKEN.value: EventHandler(
        ev.BridgeCallParams, functools.partial(ecosystem.handle_bridge_call, status=BridgeStatus.INITIATED)
    ),
    EventName.TOKEN_SENT.value: EventHandler(
        ev.BridgeCallParams, functools.partial(ecosystem.handle_bridge_call, status=BridgeStatus.SENT)
    ),
    EventName.CONTRACT_CALL_APPROVED.value: EventHandler(
        ev.BridgeApprovedParams, ecosystem.handle_bridge_approved
    ),
    EventName.CONTRACT_CALL_EXECUTED.value: EventHandler(
        ev.BridgeExecutedParams, ecosystem.handle_bridge_executed
    ),
}


@dataclass
class ProcessResult:
    """Outcome of processing one event."""

    status: ProcessStatus
    event_id: str | None
    classification: Classification | None = None
    diagnostics: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "event_id": self.event_id,
            "classification": self.classification.to_dict() if self.classification else None,
            "diagnostics": list(self.diagnostics),
        }


class EventProcessor:
    """Applies events one at a time, each in its own unit of work."""

    def __init__(self, store: EntityStore, settings: Settings | None = None) -> None:
        self.store = store
        self.settings = settings or get_settings()

    def process(self, payload: ev.ChainEvent | dict[str, Any]) -> ProcessResult:
        try:
            event = ev.parse_event(payload)
        except InvalidEventError as e:
            logger.warning("event_invalid", event_id=e.event_id, error=str(e))
            return ProcessResult(ProcessStatus.SKIPPED, e.event_id, diagnostics=[str(e)])

        log = bind_event(event.tx_hash, event.log_index)
        handler = HANDLERS.get(event.event_name)
        if handler is None:
            message = f"unsupported event {event.event_name}"
            log.info("event_unsupported", event_name=event.event_name)
            return ProcessResult(ProcessStatus.SKIPPED, event.event_id, diagnostics=[message])

        try:
            params = ev.parse_params(handler.params_model, event)
        except InvalidEventError as e:
            log.warning("event_params_invalid", event_name=event.event_name, error=str(e))
            return ProcessResult(ProcessStatus.SKIPPED, event.event_id, diagnostics=[str(e)])

        try:
            with self.store.unit_of_work() as uow:
                if ledger.exists(uow, event.tx_hash, event.log_index):
                    log.debug("event_duplicate", event_name=event.event_name)
                    return ProcessResult(ProcessStatus.DUPLICATE, event.event_id)

                ctx = EventContext(event=event, uow=uow, settings=self.settings, log=log)
                entry = handler.apply(ctx, params)
                stats.touch(uow, event.block_number, event.block_timestamp)
                ledger.record(uow, event, entry, ctx.diagnostics)
        except ConfigurationError as e:
            log.error("event_configuration_error", event_name=event.event_name, error=str(e))
            raise

        log.debug(
            "event_applied",
            event_name=event.event_name,
            category=entry.classification.category.value,
            ecosystem=entry.classification.ecosystem.value,
            complete=not ctx.diagnostics,
        )
        return ProcessResult(ProcessStatus.APPLIED, event.event_id, entry.classification, list(ctx.diagnostics))

    def process_many(self, payloads: Iterable[ev.ChainEvent | dict[str, Any]]) -> Counter:
        """Process events in order; returns a Counter of ProcessStatus values."""
        summary: Counter = Counter()
        for payload in payloads:
            result = self.process(payload)
            summary[result.status] += 1
        logger.info("events_processed", **{status.value.lower(): n for status, n in summary.items()})
        return summary
