"""
DEX and bridge satellite records.

Swaps and liquidity changes on the configured pools feed DEXTrade, PoolMetrics
and per-trader DEXProfile records; gateway calls feed BridgeOperation and
BridgeProfile. Token balances and account ecosystem counters are not touched
here: the token Transfer events of the same transaction already carry them.

All handlers are no-ops (ledger entry plus diagnostic) when ecosystem
tracking is switched off.
"""

from __future__ import annotations

import functools
from collections.abc import Callable
from decimal import Decimal

from usdfc_analytics.analytics import scoring
from usdfc_analytics.analytics.classifier import Classification
from usdfc_analytics.config.settings import PoolConfig
from usdfc_analytics.core.enums import (
    BridgeStatus,
    EcosystemType,
    TradeType,
    TradingFrequency,
    TransactionCategory,
    TransferType,
)
from usdfc_analytics.database.models import BridgeOperation, BridgeProfile, DEXProfile, DEXTrade, PoolMetrics
from usdfc_analytics.engine.context import EventContext, LedgerEntry
from usdfc_analytics.ingestion.events import (
    BridgeApprovedParams,
    BridgeCallParams,
    BridgeExecutedParams,
    PoolLiquidityParams,
    SwapParams,
)

SWAP_CLASSIFICATION = Classification(TransactionCategory.DEX_SWAP, EcosystemType.DEX_ECOSYSTEM)
LIQUIDITY_CLASSIFICATION = Classification(TransactionCategory.DEX_LIQUIDITY, EcosystemType.DEX_ECOSYSTEM)
BRIDGE_OUT_CLASSIFICATION = Classification(
    TransactionCategory.BRIDGE_TRANSFER, EcosystemType.BRIDGE_ECOSYSTEM, TransferType.BRIDGE_DEPOSIT
)
BRIDGE_IN_CLASSIFICATION = Classification(
    TransactionCategory.BRIDGE_TRANSFER, EcosystemType.BRIDGE_ECOSYSTEM, TransferType.BRIDGE_WITHDRAWAL
)

# (upper bound on trade count, label); anything above the last bound is VERY_ACTIVE
FREQUENCY_BANDS: tuple[tuple[int, TradingFrequency], ...] = (
    (1, TradingFrequency.INACTIVE),
    (5, TradingFrequency.OCCASIONAL),
    (50, TradingFrequency.REGULAR),
    (200, TradingFrequency.ACTIVE),
)


def trading_frequency(total_trades: int) -> TradingFrequency:
    for bound, label in FREQUENCY_BANDS:
        if total_trades < bound:
            return label
    return TradingFrequency.VERY_ACTIVE


def requires_ecosystem_tracking(classification: Classification) -> Callable:
    """Skip the satellite when tracking is disabled; the ledger entry is still written."""

    def decorator(handler: Callable) -> Callable:
        @functools.wraps(handler)
        def wrapper(ctx: EventContext, params, *args, **kwargs) -> LedgerEntry:
            if not ctx.settings.features.ecosystem_tracking:
                ctx.warn(
                    "ecosystem_tracking_disabled",
                    f"ecosystem tracking disabled; {ctx.event.event_name} not aggregated",
                )
                return LedgerEntry(
                    from_address=ctx.event.from_address,
                    to_address=ctx.event.to_address,
                    value=0,
                    classification=classification,
                )
            return handler(ctx, params, *args, **kwargs)

        return wrapper

    return decorator


# -----------------------------------------------------------------------------
# DEX
# -----------------------------------------------------------------------------


def _pool_metrics(ctx: EventContext, pool_address: str, pool: PoolConfig) -> PoolMetrics:
    metrics = ctx.uow.get(PoolMetrics, pool_address)
    if metrics is None:
        metrics = PoolMetrics(pool=pool_address, token0=pool.token0, token1=pool.token1, fee_tier=pool.fee_tier)
    return metrics


def _dex_profile(ctx: EventContext, trader: str) -> DEXProfile:
    profile = ctx.uow.get(DEXProfile, trader)
    if profile is None:
        profile = DEXProfile(trader=trader, first_trade_timestamp=ctx.timestamp)
    return profile


def _stablecoin_leg(ctx: EventContext, pool: PoolConfig, amount0: int, amount1: int) -> int | None:
    stablecoin = ctx.settings.address_book.stablecoin
    if pool.token0 == stablecoin:
        return amount0
    if pool.token1 == stablecoin:
        return amount1
    return None


def _configured_pool(ctx: EventContext) -> PoolConfig | None:
    pool_address = ctx.event.source_contract
    pool = ctx.settings.address_book.pool(pool_address)
    if pool is None:
        ctx.warn("dex_pool_unknown", f"pool {pool_address} is not configured", pool=pool_address)
    return pool


def _usd_value(ctx: EventContext, token: str, amount: int) -> Decimal:
    return scoring.to_tokens(abs(amount)) * ctx.settings.address_book.token_price(token)


@requires_ecosystem_tracking(SWAP_CLASSIFICATION)
def handle_swap(ctx: EventContext, params: SwapParams) -> LedgerEntry:
    """
    Record one swap against a configured pool.

    Positive amounts flow into the pool. A negative stablecoin leg means the
    pool paid stablecoin out, i.e. the recipient bought it.
    """
    event = ctx.event
    pool_address = event.source_contract
    entry = LedgerEntry(
        from_address=pool_address,
        to_address=params.recipient,
        value=0,
        classification=SWAP_CLASSIFICATION,
    )
    pool = _configured_pool(ctx)
    if pool is None:
        return entry
    usdfc_leg = _stablecoin_leg(ctx, pool, params.amount0, params.amount1)
    if usdfc_leg is None:
        ctx.warn("dex_pool_without_stablecoin", f"pool {pool_address} has no stablecoin leg", pool=pool_address)
        return entry

    trade_type = TradeType.BUY if usdfc_leg < 0 else TradeType.SELL
    if params.amount0 > 0:
        token_in, amount_in, token_out, amount_out = pool.token0, params.amount0, pool.token1, -params.amount1
    else:
        token_in, amount_in, token_out, amount_out = pool.token1, params.amount1, pool.token0, -params.amount0
    usdfc_amount = abs(usdfc_leg)
    volume_usd = _usd_value(ctx, ctx.settings.address_book.stablecoin, usdfc_amount)

    ctx.uow.put(
        DEXTrade(
            id=event.event_id,
            tx_hash=event.tx_hash,
            log_index=event.log_index,
            block_number=event.block_number,
            timestamp=event.block_timestamp,
            pool=pool_address,
            trader=params.recipient,
            recipient=params.recipient,
            trade_type=trade_type,
            token_in=token_in,
            token_out=token_out,
            amount_in=amount_in,
            amount_out=amount_out,
            usdfc_amount=usdfc_amount,
            volume_usd=volume_usd,
            fee_tier=pool.fee_tier,
        )
    )

    metrics = _pool_metrics(ctx, pool_address, pool)
    metrics.volume_all_time_usd += volume_usd
    metrics.usdfc_volume_all_time += usdfc_amount
    metrics.tx_count_all_time += 1
    if trade_type == TradeType.BUY:
        metrics.buy_count += 1
    else:
        metrics.sell_count += 1
    metrics.last_trade_timestamp = ctx.timestamp
    ctx.uow.put(metrics)

    profile = _dex_profile(ctx, params.recipient)
    profile.total_trades += 1
    profile.total_volume_usd += volume_usd
    profile.largest_trade_usd = max(profile.largest_trade_usd, volume_usd)
    profile.average_trade_size_usd = profile.total_volume_usd / profile.total_trades
    if trade_type == TradeType.BUY:
        profile.buy_count += 1
    else:
        profile.sell_count += 1
    profile.last_trade_timestamp = ctx.timestamp
    profile.trading_frequency = trading_frequency(profile.total_trades)
    ctx.uow.put(profile)

    transfer_type = TransferType.DEX_SWAP_IN if trade_type == TradeType.BUY else TransferType.DEX_SWAP_OUT
    if trade_type == TradeType.BUY:
        entry_from, entry_to = pool_address, params.recipient
    else:
        entry_from, entry_to = params.sender, pool_address
    return LedgerEntry(
        from_address=entry_from,
        to_address=entry_to,
        value=usdfc_amount,
        classification=Classification(SWAP_CLASSIFICATION.category, SWAP_CLASSIFICATION.ecosystem, transfer_type),
    )


@requires_ecosystem_tracking(LIQUIDITY_CLASSIFICATION)
def handle_pool_liquidity(ctx: EventContext, params: PoolLiquidityParams, trade_type: TradeType) -> LedgerEntry:
    """PoolMint / PoolBurn: a liquidity trade with both legs priced in USD."""
    event = ctx.event
    pool_address = event.source_contract
    entry = LedgerEntry(
        from_address=params.owner,
        to_address=pool_address,
        value=0,
        classification=LIQUIDITY_CLASSIFICATION,
    )
    pool = _configured_pool(ctx)
    if pool is None:
        return entry
    usdfc_leg = _stablecoin_leg(ctx, pool, params.amount0, params.amount1) or 0
    volume_usd = _usd_value(ctx, pool.token0, params.amount0) + _usd_value(ctx, pool.token1, params.amount1)

    ctx.uow.put(
        DEXTrade(
            id=event.event_id,
            tx_hash=event.tx_hash,
            log_index=event.log_index,
            block_number=event.block_number,
            timestamp=event.block_timestamp,
            pool=pool_address,
            trader=params.owner,
            recipient=params.owner,
            trade_type=trade_type,
            token_in=pool.token0,
            token_out=pool.token1,
            amount_in=params.amount0,
            amount_out=params.amount1,
            usdfc_amount=usdfc_leg,
            volume_usd=volume_usd,
            fee_tier=pool.fee_tier,
        )
    )

    metrics = _pool_metrics(ctx, pool_address, pool)
    metrics.liquidity_event_count += 1
    ctx.uow.put(metrics)

    profile = _dex_profile(ctx, params.owner)
    profile.liquidity_operations += 1
    profile.last_trade_timestamp = ctx.timestamp
    ctx.uow.put(profile)

    if trade_type == TradeType.REMOVE_LIQUIDITY:
        return LedgerEntry(pool_address, params.owner, usdfc_leg, LIQUIDITY_CLASSIFICATION)
    return LedgerEntry(params.owner, pool_address, usdfc_leg, LIQUIDITY_CLASSIFICATION)


# -----------------------------------------------------------------------------
# Bridge
# -----------------------------------------------------------------------------


@requires_ecosystem_tracking(BRIDGE_OUT_CLASSIFICATION)
def handle_bridge_call(ctx: EventContext, params: BridgeCallParams, status: BridgeStatus) -> LedgerEntry:
    """Outbound gateway call (ContractCall / ContractCallWithToken / TokenSent)."""
    event = ctx.event
    ctx.uow.put(
        BridgeOperation(
            id=event.event_id,
            tx_hash=event.tx_hash,
            log_index=event.log_index,
            block_number=event.block_number,
            timestamp=event.block_timestamp,
            status=status,
            sender=params.sender,
            destination_chain=params.destination_chain,
            destination_address=params.destination_address,
            symbol=params.symbol,
            amount=params.amount,
            payload_hash=params.payload_hash,
        )
    )

    profile = ctx.uow.get(BridgeProfile, params.sender)
    if profile is None:
        profile = BridgeProfile(user=params.sender, first_bridge_timestamp=ctx.timestamp)
    profile.total_bridge_operations += 1
    if params.symbol == ctx.settings.address_book.stablecoin_symbol:
        profile.total_bridge_volume += params.amount
    if params.destination_chain not in profile.destination_chains:
        profile.destination_chains.append(params.destination_chain)
    profile.average_bridge_size = Decimal(profile.total_bridge_volume) / profile.total_bridge_operations
    profile.last_bridge_timestamp = ctx.timestamp
    ctx.uow.put(profile)

    return LedgerEntry(
        from_address=params.sender,
        to_address=event.source_contract,
        value=params.amount,
        classification=BRIDGE_OUT_CLASSIFICATION,
    )


def _operation_by_command(ctx: EventContext, command_id: str) -> BridgeOperation | None:
    return ctx.uow.get(BridgeOperation, command_id)


@requires_ecosystem_tracking(BRIDGE_IN_CLASSIFICATION)
def handle_bridge_approved(ctx: EventContext, params: BridgeApprovedParams) -> LedgerEntry:
    event = ctx.event
    operation = _operation_by_command(ctx, params.command_id)
    if operation is None:
        operation = BridgeOperation(
            id=params.command_id,
            tx_hash=event.tx_hash,
            log_index=event.log_index,
            block_number=event.block_number,
            timestamp=event.block_timestamp,
            status=BridgeStatus.APPROVED,
            command_id=params.command_id,
        )
    operation.status = BridgeStatus.APPROVED
    operation.sender = params.source_address
    operation.source_chain = params.source_chain
    operation.destination_address = params.contract_address
    operation.payload_hash = params.payload_hash
    operation.approved_timestamp = ctx.timestamp
    ctx.uow.put(operation)
    return LedgerEntry(
        from_address=event.source_contract,
        to_address=params.contract_address or event.source_contract,
        value=0,
        classification=BRIDGE_IN_CLASSIFICATION,
    )


@requires_ecosystem_tracking(BRIDGE_IN_CLASSIFICATION)
def handle_bridge_executed(ctx: EventContext, params: BridgeExecutedParams) -> LedgerEntry:
    event = ctx.event
    operation = _operation_by_command(ctx, params.command_id)
    if operation is None:
        ctx.warn(
            "bridge_execution_without_approval",
            f"command {params.command_id} executed without a recorded approval",
            command_id=params.command_id,
        )
        operation = BridgeOperation(
            id=params.command_id,
            tx_hash=event.tx_hash,
            log_index=event.log_index,
            block_number=event.block_number,
            timestamp=event.block_timestamp,
            status=BridgeStatus.EXECUTED,
            command_id=params.command_id,
        )
    operation.status = BridgeStatus.EXECUTED
    operation.executed_timestamp = ctx.timestamp
    ctx.uow.put(operation)
    return LedgerEntry(
        from_address=event.source_contract,
        to_address=operation.destination_address or event.source_contract,
        value=0,
        classification=BRIDGE_IN_CLASSIFICATION,
    )
