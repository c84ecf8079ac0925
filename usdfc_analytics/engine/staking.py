"""
Protocol token staking positions.

Mirrors the stability pool: StakeChanged carries the absolute new stake,
StakingGainsWithdrawn carries stablecoin and collateral gains. Strategy is
re-labelled from average stake, tenure and yield after each change.
"""

from __future__ import annotations

from usdfc_analytics.analytics import scoring
from usdfc_analytics.analytics.classifier import Classification
from usdfc_analytics.core.enums import (
    EcosystemType,
    StakeOperationType,
    TransactionCategory,
    TransferType,
)
from usdfc_analytics.core.exceptions import MissingRecordError
from usdfc_analytics.database.models import ProtocolStake, StakeOperation
from usdfc_analytics.engine import accounts, stats
from usdfc_analytics.engine.context import EventContext, LedgerEntry
from usdfc_analytics.ingestion.events import StakeChangedParams, StakingGainsParams

STAKING_CLASSIFICATION = Classification(
    TransactionCategory.STAKING_OPERATION, EcosystemType.PROTOCOL_NATIVE, TransferType.STAKING_OPERATION
)


def stake_operation_type(before: int, after: int) -> StakeOperationType:
    if after > before:
        return StakeOperationType.STAKE
    if after < before:
        return StakeOperationType.UNSTAKE
    return StakeOperationType.CLAIM_GAINS


def _append_operation(
    ctx: EventContext,
    staker: str,
    operation: StakeOperationType,
    amount: int,
    before: int,
    after: int,
    collateral_gain: int = 0,
    stablecoin_gain: int = 0,
) -> None:
    event = ctx.event
    ctx.uow.put(
        StakeOperation(
            id=event.event_id,
            tx_hash=event.tx_hash,
            log_index=event.log_index,
            staker=staker,
            operation=operation,
            amount=amount,
            stake_before=before,
            stake_after=after,
            collateral_gain=collateral_gain,
            stablecoin_gain=stablecoin_gain,
            block_number=event.block_number,
            timestamp=event.block_timestamp,
        )
    )
    stats.count_daily(ctx.uow, ctx.timestamp, "stake_operation_count")


def handle_stake_changed(ctx: EventContext, params: StakeChangedParams) -> LedgerEntry:
    uow = ctx.uow
    position = uow.get(ProtocolStake, params.staker)
    if position is None:
        position = ProtocolStake(
            staker=params.staker,
            first_stake_timestamp=ctx.timestamp,
            last_activity_timestamp=ctx.timestamp,
        )

    before = position.stake
    after = params.new_stake
    delta = after - before
    if delta > 0:
        position.total_staked += delta
    elif delta < 0:
        position.total_unstaked += -delta

    position.stake = after
    position.last_activity_timestamp = ctx.timestamp
    position.days_active = scoring.days_between(position.first_stake_timestamp, ctx.timestamp)
    position.average_stake = scoring.smoothed_balance(position.average_stake, after, position.days_active)
    position.performance_score = scoring.position_performance_score(position.days_active, after)
    position.strategy = scoring.staking_strategy(position.average_stake, position.days_active, position.yield_rate)
    position.operation_count += 1
    uow.put(position)
    _append_operation(ctx, params.staker, stake_operation_type(before, after), abs(delta), before, after)

    staker_delta = 0
    if before == 0 and after > 0:
        staker_delta = 1
    elif before > 0 and after == 0:
        staker_delta = -1
    stats.apply_delta(uow, stats.protocol_stats(uow), {"total_staked": delta, "staker_count": staker_delta})

    account = accounts.credit_participant(ctx, params.staker, STAKING_CLASSIFICATION)
    staking = ctx.event.source_contract
    entry_from, entry_to = (params.staker, staking) if delta >= 0 else (staking, params.staker)
    return LedgerEntry(
        from_address=entry_from,
        to_address=entry_to,
        value=abs(delta),
        classification=STAKING_CLASSIFICATION,
        composability_score=accounts.composability_of(account),
    )


def handle_gains_withdrawn(ctx: EventContext, params: StakingGainsParams) -> LedgerEntry:
    gain = params.collateral_gain + params.stablecoin_gain
    entry = LedgerEntry(
        from_address=ctx.event.source_contract,
        to_address=params.staker,
        value=params.stablecoin_gain,
        classification=STAKING_CLASSIFICATION,
    )
    try:
        position = ctx.require(ProtocolStake, params.staker)
    except MissingRecordError as e:
        ctx.warn("staking_gains_missing_record", str(e), staker=params.staker)
        return entry

    position.days_active = scoring.days_between(position.first_stake_timestamp, ctx.timestamp)
    if ctx.settings.features.yield_tracking and position.average_stake > 0:
        observation = scoring.annualized_yield(gain, position.average_stake)
        position.yield_rate = scoring.smoothed_yield(
            position.yield_rate, observation, first_observation=position.yield_observations == 0
        )
        position.yield_observations += 1
        position.strategy = scoring.staking_strategy(
            position.average_stake, position.days_active, position.yield_rate
        )
    position.total_collateral_gained += params.collateral_gain
    position.total_stablecoin_gained += params.stablecoin_gain
    position.last_activity_timestamp = ctx.timestamp
    position.operation_count += 1
    ctx.uow.put(position)
    _append_operation(
        ctx,
        params.staker,
        StakeOperationType.CLAIM_GAINS,
        0,
        position.stake,
        position.stake,
        collateral_gain=params.collateral_gain,
        stablecoin_gain=params.stablecoin_gain,
    )
    return entry
