"""
Stability pool deposits.

UserDepositChanged carries the absolute new deposit; the delta against the
stored deposit picks DEPOSIT / WITHDRAW / CLAIM_GAINS. Gains withdrawals go
through their own entry point and only touch yield metrics and lifetime gains.
Every handled event appends a StabilityOperation.
"""

from __future__ import annotations

from usdfc_analytics.analytics import scoring
from usdfc_analytics.analytics.classifier import Classification
from usdfc_analytics.core.enums import (
    EcosystemType,
    StabilityOperationType,
    TransactionCategory,
    TransferType,
)
from usdfc_analytics.core.exceptions import MissingRecordError
from usdfc_analytics.database.models import StabilityDeposit, StabilityOperation
from usdfc_analytics.engine import accounts, stats
from usdfc_analytics.engine.context import EventContext, LedgerEntry
from usdfc_analytics.ingestion.events import DepositChangedParams, StabilityGainsParams

STABILITY_CLASSIFICATION = Classification(TransactionCategory.STABILITY_OPERATION, EcosystemType.PROTOCOL_NATIVE)


def deposit_operation_type(before: int, after: int) -> StabilityOperationType:
    if after > before:
        return StabilityOperationType.DEPOSIT
    if after < before:
        return StabilityOperationType.WITHDRAW
    return StabilityOperationType.CLAIM_GAINS


def _append_operation(
    ctx: EventContext,
    depositor: str,
    operation: StabilityOperationType,
    amount: int,
    before: int,
    after: int,
    collateral_gain: int = 0,
    protocol_token_gain: int = 0,
) -> None:
    event = ctx.event
    ctx.uow.put(
        StabilityOperation(
            id=event.event_id,
            tx_hash=event.tx_hash,
            log_index=event.log_index,
            depositor=depositor,
            operation=operation,
            amount=amount,
            deposit_before=before,
            deposit_after=after,
            collateral_gain=collateral_gain,
            protocol_token_gain=protocol_token_gain,
            block_number=event.block_number,
            timestamp=event.block_timestamp,
        )
    )
    stats.count_daily(ctx.uow, ctx.timestamp, "stability_operation_count")


def handle_deposit_changed(ctx: EventContext, params: DepositChangedParams) -> LedgerEntry:
    uow = ctx.uow
    deposit = uow.get(StabilityDeposit, params.depositor)
    if deposit is None:
        deposit = StabilityDeposit(
            depositor=params.depositor,
            first_deposit_timestamp=ctx.timestamp,
            last_activity_timestamp=ctx.timestamp,
        )

    before = deposit.current_deposit
    after = params.new_deposit
    delta = after - before
    operation = deposit_operation_type(before, after)
    if delta > 0:
        deposit.total_deposited += delta
    elif delta < 0:
        deposit.total_withdrawn += -delta

    deposit.current_deposit = after
    deposit.last_activity_timestamp = ctx.timestamp
    deposit.days_active = scoring.days_between(deposit.first_deposit_timestamp, ctx.timestamp)
    deposit.average_deposit = scoring.smoothed_balance(deposit.average_deposit, after, deposit.days_active)
    deposit.performance_score = scoring.position_performance_score(deposit.days_active, after)
    deposit.operation_count += 1
    uow.put(deposit)
    _append_operation(ctx, params.depositor, operation, abs(delta), before, after)

    depositor_delta = 0
    if before == 0 and after > 0:
        depositor_delta = 1
    elif before > 0 and after == 0:
        depositor_delta = -1
    stats.apply_delta(
        uow,
        stats.protocol_stats(uow),
        {"total_stability_deposits": delta, "stability_depositor_count": depositor_delta},
    )

    account = accounts.credit_participant(ctx, params.depositor, STABILITY_CLASSIFICATION)
    pool = ctx.event.source_contract
    if delta >= 0:
        entry_from, entry_to, transfer_type = params.depositor, pool, TransferType.STABILITY_DEPOSIT
    else:
        entry_from, entry_to, transfer_type = pool, params.depositor, TransferType.STABILITY_WITHDRAWAL
    return LedgerEntry(
        from_address=entry_from,
        to_address=entry_to,
        value=abs(delta),
        classification=Classification(
            STABILITY_CLASSIFICATION.category, STABILITY_CLASSIFICATION.ecosystem, transfer_type
        ),
        composability_score=accounts.composability_of(account),
    )


def handle_gains_withdrawn(ctx: EventContext, params: StabilityGainsParams) -> LedgerEntry:
    """Collateral (and protocol token) gains claimed from the pool: yield smoothing only."""
    entry = LedgerEntry(
        from_address=ctx.event.source_contract,
        to_address=params.depositor,
        value=params.collateral_gain,
        classification=STABILITY_CLASSIFICATION,
    )
    try:
        deposit = ctx.require(StabilityDeposit, params.depositor)
    except MissingRecordError as e:
        ctx.warn("stability_gains_missing_record", str(e), depositor=params.depositor)
        return entry

    deposit.days_active = scoring.days_between(deposit.first_deposit_timestamp, ctx.timestamp)
    if ctx.settings.features.yield_tracking and deposit.average_deposit > 0:
        observation = scoring.annualized_yield(params.collateral_gain, deposit.average_deposit)
        deposit.yield_rate = scoring.smoothed_yield(
            deposit.yield_rate, observation, first_observation=deposit.yield_observations == 0
        )
        deposit.yield_observations += 1
    deposit.total_collateral_gained += params.collateral_gain
    deposit.total_protocol_token_gained += params.protocol_token_gain
    deposit.last_activity_timestamp = ctx.timestamp
    deposit.operation_count += 1
    ctx.uow.put(deposit)
    _append_operation(
        ctx,
        params.depositor,
        StabilityOperationType.CLAIM_GAINS,
        0,
        deposit.current_deposit,
        deposit.current_deposit,
        collateral_gain=params.collateral_gain,
        protocol_token_gain=params.protocol_token_gain,
    )
    return entry
