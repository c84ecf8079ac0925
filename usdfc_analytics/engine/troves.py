"""
Trove lifecycle aggregation, liquidations and redemptions.

States per borrower: no record -> ACTIVE -> CLOSED_BY_OWNER / CLOSED_BY_LIQUIDATION,
and closed -> ACTIVE again when new debt appears. TroveUpdated carries absolute
collateral and debt; deltas against the stored values classify the operation
and feed lifetime totals and protocol totals. Derived scores are recomputed
from the new absolute state on every update.

The global active-trove count moves only on ACTIVE <-> non-ACTIVE transitions.
"""

from __future__ import annotations

from decimal import Decimal

from usdfc_analytics.analytics import scoring
from usdfc_analytics.analytics.classifier import Classification
from usdfc_analytics.config.settings import FeatureFlags
from usdfc_analytics.core.enums import (
    EcosystemType,
    TransactionCategory,
    TroveOperationType,
    TroveStatus,
)
from usdfc_analytics.core.exceptions import MissingRecordError
from usdfc_analytics.database.models import Liquidation, Redemption, Trove, TroveOperation
from usdfc_analytics.engine import accounts, stats
from usdfc_analytics.engine.context import EventContext, LedgerEntry
from usdfc_analytics.ingestion.events import (
    LiquidationParams,
    RedemptionParams,
    TroveLiquidatedParams,
    TroveUpdatedParams,
)
from usdfc_analytics.usdfc_logging import get_logger

logger = get_logger(__name__)

TROVE_CLASSIFICATION = Classification(TransactionCategory.TROVE_OPERATION, EcosystemType.PROTOCOL_NATIVE)
LIQUIDATION_CLASSIFICATION = Classification(TransactionCategory.LIQUIDATION, EcosystemType.PROTOCOL_NATIVE)
REDEMPTION_CLASSIFICATION = Classification(TransactionCategory.REDEMPTION, EcosystemType.PROTOCOL_NATIVE)

LIQUIDATION_PERFORMANCE_FACTOR = Decimal("0.5")


def trove_operation_type(was_open: bool, is_open: bool, collateral_delta: int, debt_delta: int) -> TroveOperationType:
    """Name the change between two trove states. Single-sided changes get a specific name."""
    if not was_open and is_open:
        return TroveOperationType.OPEN
    if was_open and not is_open:
        return TroveOperationType.CLOSE
    if collateral_delta > 0 and debt_delta == 0:
        return TroveOperationType.ADD_COLLATERAL
    if collateral_delta < 0 and debt_delta == 0:
        return TroveOperationType.WITHDRAW_COLLATERAL
    if debt_delta > 0 and collateral_delta == 0:
        return TroveOperationType.BORROW
    if debt_delta < 0 and collateral_delta == 0:
        return TroveOperationType.REPAY
    return TroveOperationType.ADJUST


def refresh_metrics(trove: Trove, timestamp: int, features: FeatureFlags) -> Trove:
    """
    Recompute every derived trove metric from its current collateral and debt.

    The running average is weighted over debt-carrying updates
    (`debt_ratio_samples`), not over `operation_count`: a close or a zero-debt
    update bumps the operation count but never the average, so the no-debt
    sentinel cannot drag it. The lowest ratio uses the same samples.
    """
    cr = scoring.collateral_ratio(trove.collateral, trove.debt)
    trove.collateral_ratio = cr
    trove.days_open = scoring.days_between(trove.opened_at_timestamp, timestamp)

    if trove.debt > 0:
        trove.debt_ratio_samples += 1
        n = Decimal(trove.debt_ratio_samples)
        trove.average_collateral_ratio = trove.average_collateral_ratio * (1 - 1 / n) + cr / n
        trove.lowest_collateral_ratio = min(trove.lowest_collateral_ratio, cr)
        if cr <= scoring.MINIMUM_COLLATERAL_RATIO:
            trove.risk_events += 1

    trove.health_score = scoring.health_score(cr)
    trove.risk_level = scoring.risk_level(cr)
    trove.liquidation_price = scoring.liquidation_price(trove.collateral, trove.debt)
    trove.safety_margin = scoring.safety_margin(cr)
    trove.performance_score = scoring.trove_performance_score(
        trove.health_score,
        scoring.stability_score(trove.lowest_collateral_ratio),
        trove.risk_events,
        trove.days_open,
    )
    if features.liquidation_prediction:
        trove.liquidation_risk_score = scoring.liquidation_risk_score(
            cr, trove.risk_events, trove.operation_count, trove.days_open
        )
    trove.optimization_suggestions = (
        scoring.optimization_suggestions(cr, trove.risk_events, trove.operation_count, trove.days_open)
        if trove.debt > 0
        else []
    )
    return trove


def _operation(
    ctx: EventContext,
    trove: Trove,
    operation: TroveOperationType,
    collateral_before: int,
    debt_before: int,
) -> TroveOperation:
    event = ctx.event
    op = TroveOperation(
        id=event.event_id,
        tx_hash=event.tx_hash,
        log_index=event.log_index,
        trove=trove.owner,
        operation=operation,
        collateral_before=collateral_before,
        collateral_after=trove.collateral,
        debt_before=debt_before,
        debt_after=trove.debt,
        collateral_change=trove.collateral - collateral_before,
        debt_change=trove.debt - debt_before,
        collateral_ratio=trove.collateral_ratio,
        block_number=event.block_number,
        timestamp=event.block_timestamp,
    )
    ctx.uow.put(op)
    stats.count_daily(ctx.uow, ctx.timestamp, "trove_operation_count")
    return op


def handle_trove_updated(ctx: EventContext, params: TroveUpdatedParams) -> LedgerEntry:
    uow = ctx.uow
    trove = uow.get(Trove, params.borrower)
    is_new = trove is None
    if trove is None:
        trove = Trove(
            owner=params.borrower,
            opened_at_block=ctx.block_number,
            opened_at_timestamp=ctx.timestamp,
        )
        previous_status = None
    else:
        previous_status = trove.status

    collateral_before, debt_before = trove.collateral, trove.debt
    collateral_delta = params.coll - collateral_before
    debt_delta = params.debt - debt_before
    was_open = previous_status == TroveStatus.ACTIVE
    is_open = params.debt > 0
    operation = trove_operation_type(was_open, is_open, collateral_delta, debt_delta)

    if not is_new and not was_open and is_open:
        trove.reopen_count += 1
        trove.opened_at_block = ctx.block_number
        trove.opened_at_timestamp = ctx.timestamp
        trove.closed_at_block = None
        trove.closed_at_timestamp = None

    trove.collateral = params.coll
    trove.debt = params.debt
    trove.stake = params.stake
    if collateral_delta > 0:
        trove.total_collateral_added += collateral_delta
    elif collateral_delta < 0:
        trove.total_collateral_withdrawn += -collateral_delta
    if debt_delta > 0:
        trove.total_borrowed += debt_delta
    elif debt_delta < 0:
        trove.total_repaid += -debt_delta

    if is_open:
        trove.status = TroveStatus.ACTIVE
    elif previous_status != TroveStatus.CLOSED_BY_LIQUIDATION:
        # A zeroed trove after liquidation stays liquidated
        trove.status = TroveStatus.CLOSED_BY_OWNER
        if was_open or is_new:
            trove.closed_at_block = ctx.block_number
            trove.closed_at_timestamp = ctx.timestamp

    trove.operation_count += 1
    trove.last_update_block = ctx.block_number
    trove.last_update_timestamp = ctx.timestamp
    refresh_metrics(trove, ctx.timestamp, ctx.settings.features)
    uow.put(trove)
    _operation(ctx, trove, operation, collateral_before, debt_before)

    protocol = stats.apply_delta(
        uow,
        stats.protocol_stats(uow),
        {
            "total_debt": debt_delta,
            "total_collateral": collateral_delta,
            "total_trove_count": 1 if is_new else 0,
            "active_trove_count": stats.active_trove_delta(previous_status, trove.status),
        },
    )
    stats.refresh_protocol_health(protocol)

    account = accounts.credit_participant(ctx, params.borrower, TROVE_CLASSIFICATION)
    return LedgerEntry(
        from_address=params.borrower,
        to_address=ctx.event.source_contract or params.borrower,
        value=params.debt,
        classification=TROVE_CLASSIFICATION,
        composability_score=accounts.composability_of(account),
    )


def handle_trove_liquidated(ctx: EventContext, params: TroveLiquidatedParams) -> LedgerEntry:
    """
    Close a trove by liquidation. Collateral and debt leave the position;
    protocol totals are reduced by the batch Liquidation event, not here.
    """
    uow = ctx.uow
    entry = LedgerEntry(
        from_address=ctx.event.source_contract or params.borrower,
        to_address=params.borrower,
        value=params.debt,
        classification=LIQUIDATION_CLASSIFICATION,
    )
    try:
        trove = ctx.require(Trove, params.borrower)
    except MissingRecordError as e:
        ctx.warn("trove_liquidated_missing_record", str(e), borrower=params.borrower)
        return entry

    previous_status = trove.status
    collateral_before, debt_before = trove.collateral, trove.debt
    trove.collateral = 0
    trove.debt = 0
    trove.stake = 0
    trove.status = TroveStatus.CLOSED_BY_LIQUIDATION
    trove.closed_at_block = ctx.block_number
    trove.closed_at_timestamp = ctx.timestamp
    trove.risk_events += 1
    trove.liquidation_count += 1
    trove.operation_count += 1
    trove.last_update_block = ctx.block_number
    trove.last_update_timestamp = ctx.timestamp
    refresh_metrics(trove, ctx.timestamp, ctx.settings.features)
    trove.performance_score = scoring.clamp(trove.performance_score * LIQUIDATION_PERFORMANCE_FACTOR)
    uow.put(trove)
    _operation(ctx, trove, TroveOperationType.LIQUIDATE, collateral_before, debt_before)

    stats.apply_delta(
        uow,
        stats.protocol_stats(uow),
        {"active_trove_count": stats.active_trove_delta(previous_status, trove.status)},
    )
    logger.info(
        "trove_liquidated",
        borrower=params.borrower,
        debt=debt_before,
        collateral=collateral_before,
        tx_hash=ctx.event.tx_hash,
    )
    accounts.credit_participant(ctx, params.borrower, LIQUIDATION_CLASSIFICATION)
    return entry


def handle_liquidation(ctx: EventContext, params: LiquidationParams) -> LedgerEntry:
    """Batch liquidation summary: one Liquidation record and the protocol-total reductions."""
    uow = ctx.uow
    event = ctx.event
    uow.put(
        Liquidation(
            id=event.event_id,
            tx_hash=event.tx_hash,
            log_index=event.log_index,
            block_number=event.block_number,
            timestamp=event.block_timestamp,
            liquidated_debt=params.liquidated_debt,
            liquidated_collateral=params.liquidated_collateral,
            collateral_gas_compensation=params.collateral_gas_compensation,
            debt_gas_compensation=params.debt_gas_compensation,
            liquidation_ratio=scoring.collateral_ratio(params.liquidated_collateral, params.liquidated_debt),
        )
    )
    protocol = stats.apply_delta(
        uow,
        stats.protocol_stats(uow),
        {
            "lifetime_liquidation_count": 1,
            "total_debt": -params.liquidated_debt,
            "total_collateral": -params.liquidated_collateral,
        },
    )
    stats.refresh_protocol_health(protocol)
    stats.count_daily(uow, ctx.timestamp, "liquidation_count")
    return LedgerEntry(
        from_address=event.source_contract,
        to_address=event.source_contract,
        value=params.liquidated_debt,
        classification=LIQUIDATION_CLASSIFICATION,
    )


def handle_redemption(ctx: EventContext, params: RedemptionParams) -> LedgerEntry:
    """
    One redemption. actual_amount is stablecoin redeemed, collateral_sent is
    what the redeemer received; debt totals move through the TroveUpdated
    events of the redeemed troves.
    """
    uow = ctx.uow
    event = ctx.event
    redeemer = params.redeemer.lower() if params.redeemer else event.from_address
    uow.put(
        Redemption(
            id=event.event_id,
            tx_hash=event.tx_hash,
            log_index=event.log_index,
            block_number=event.block_number,
            timestamp=event.block_timestamp,
            redeemer=redeemer,
            attempted_amount=params.attempted_amount,
            actual_amount=params.actual_amount,
            collateral_sent=params.collateral_sent,
            collateral_fee=params.collateral_fee,
        )
    )
    stats.apply_delta(
        uow,
        stats.protocol_stats(uow),
        {"lifetime_redemption_count": 1, "total_redemption_fees": params.collateral_fee},
    )
    stats.count_daily(uow, ctx.timestamp, "redemption_count")
    account = accounts.credit_participant(ctx, redeemer, REDEMPTION_CLASSIFICATION, params.actual_amount)
    return LedgerEntry(
        from_address=redeemer,
        to_address=event.source_contract,
        value=params.actual_amount,
        classification=REDEMPTION_CLASSIFICATION,
        composability_score=accounts.composability_of(account),
    )
