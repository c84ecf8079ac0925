"""
Entity records for the USDFC data model.

Every record is a dataclass with a `kind` (storage namespace) and a `key`
(its upsert key). to_dict / from_dict give a JSON-safe form: ints stay ints,
Decimals become strings, enums become their values. from_dict rebuilds enums
from their values, so an unknown classification string fails at load time.
"""

from __future__ import annotations

import types
from dataclasses import dataclass, field, fields
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, TypeVar, Union, get_args, get_origin, get_type_hints

from usdfc_analytics.core.enums import (
    AmountTier,
    BridgeStatus,
    EcosystemType,
    RiskLevel,
    StabilityOperationType,
    StakeOperationType,
    StakingStrategy,
    TradeType,
    TradingFrequency,
    TransactionCategory,
    TransactionSource,
    TransferType,
    TroveOperationType,
    TroveStatus,
    TrendDirection,
    UserType,
)

GLOBAL_ID = "global"

R = TypeVar("R", bound="Record")

RECORD_TYPES: dict[str, type[Record]] = {}
_HINTS: dict[type, dict[str, Any]] = {}


def register(cls: type[R]) -> type[R]:
    """Class decorator: make a record type loadable by its kind."""
    RECORD_TYPES[cls.kind] = cls
    return cls


def _encode(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, list):
        return [_encode(v) for v in value]
    return value


def _decode(tp: Any, value: Any) -> Any:
    if value is None:
        return None
    origin = get_origin(tp)
    if origin in (Union, types.UnionType):
        args = [a for a in get_args(tp) if a is not type(None)]
        return _decode(args[0], value)
    if origin is list:
        (item_type,) = get_args(tp) or (Any,)
        return [_decode(item_type, v) for v in value]
    if isinstance(tp, type):
        if issubclass(tp, Enum):
            return tp(value)
        if tp is Decimal:
            return Decimal(str(value))
        if tp is int:
            return int(value)
    return value


@dataclass
class Record:
    """Base for all stored entities."""

    kind: ClassVar[str] = ""
    key_field: ClassVar[str] = "id"

    @property
    def key(self) -> str:
        return str(getattr(self, self.key_field))

    def to_dict(self) -> dict[str, Any]:
        return {f.name: _encode(getattr(self, f.name)) for f in fields(self)}

    @classmethod
    def from_dict(cls: type[R], data: dict[str, Any]) -> R:
        hints = _HINTS.get(cls)
        if hints is None:
            hints = _HINTS[cls] = get_type_hints(cls)
        kwargs = {f.name: _decode(hints[f.name], data[f.name]) for f in fields(cls) if f.name in data}
        return cls(**kwargs)


# -----------------------------------------------------------------------------
# Accounts and ledger
# -----------------------------------------------------------------------------


@register
@dataclass
class Account(Record):
    """
    Running rollup for one address: balance, volumes, per-ecosystem activity, scores.

    net_volume == total_volume_in - total_volume_out at all times.
    """

    kind: ClassVar[str] = "account"
    key_field: ClassVar[str] = "address"

    address: str
    balance: int = 0
    total_transaction_count: int = 0
    total_volume_in: int = 0
    total_volume_out: int = 0
    net_volume: int = 0
    first_seen_block: int = 0
    first_seen_timestamp: int = 0
    last_active_block: int = 0
    last_active_timestamp: int = 0
    days_since_first_seen: int = 0
    protocol_operation_count: int = 0
    dex_activity_count: int = 0
    bridge_activity_count: int = 0
    p2p_transfer_count: int = 0
    defi_integration_count: int = 0
    protocol_volume: int = 0
    dex_volume: int = 0
    bridge_volume: int = 0
    p2p_volume: int = 0
    defi_integration_volume: int = 0
    user_type: UserType = UserType.RETAIL_USER
    risk_score: Decimal = Decimal(0)
    composability_score: Decimal = Decimal(0)
    influence_score: Decimal = Decimal(0)

    def ecosystem_counts(self) -> list[int]:
        return [
            self.protocol_operation_count,
            self.dex_activity_count,
            self.bridge_activity_count,
            self.p2p_transfer_count,
            self.defi_integration_count,
        ]


@register
@dataclass
class Transaction(Record):
    """Immutable ledger entry, one per (tx_hash, log_index)."""

    kind: ClassVar[str] = "transaction"

    id: str
    tx_hash: str
    log_index: int
    block_number: int
    block_timestamp: int
    event_name: str
    source_contract: str
    from_address: str
    to_address: str
    value: int
    category: TransactionCategory
    ecosystem: EcosystemType
    transfer_type: TransferType | None = None
    source: TransactionSource = TransactionSource.CONTRACT_EVENT
    success: bool = True
    risk_score: Decimal = Decimal(0)
    composability_score: Decimal = Decimal(0)
    aggregation_complete: bool = True
    diagnostics: list[str] = field(default_factory=list)


@register
@dataclass
class Transfer(Record):
    kind: ClassVar[str] = "transfer"

    id: str
    tx_hash: str
    log_index: int
    block_number: int
    timestamp: int
    from_address: str
    to_address: str
    value: int
    transfer_type: TransferType
    ecosystem: EcosystemType
    category: TransactionCategory
    amount_tier: AmountTier
    risk_score: Decimal = Decimal(0)


# -----------------------------------------------------------------------------
# Troves, liquidations, redemptions
# -----------------------------------------------------------------------------


@register
@dataclass
class Trove(Record):
    """One collateralized debt position per borrower; reopened in place after a close."""

    kind: ClassVar[str] = "trove"
    key_field: ClassVar[str] = "owner"

    owner: str
    collateral: int = 0
    debt: int = 0
    stake: int = 0
    status: TroveStatus = TroveStatus.ACTIVE
    collateral_ratio: Decimal = Decimal(99999)
    opened_at_block: int = 0
    opened_at_timestamp: int = 0
    closed_at_block: int | None = None
    closed_at_timestamp: int | None = None
    last_update_block: int = 0
    last_update_timestamp: int = 0
    days_open: int = 0
    total_borrowed: int = 0
    total_repaid: int = 0
    total_collateral_added: int = 0
    total_collateral_withdrawn: int = 0
    operation_count: int = 0
    risk_events: int = 0
    liquidation_count: int = 0
    reopen_count: int = 0
    debt_ratio_samples: int = 0
    average_collateral_ratio: Decimal = Decimal(0)
    lowest_collateral_ratio: Decimal = Decimal(99999)
    health_score: Decimal = Decimal(100)
    risk_level: RiskLevel = RiskLevel.VERY_LOW
    liquidation_price: Decimal = Decimal(0)
    safety_margin: Decimal = Decimal(0)
    performance_score: Decimal = Decimal(100)
    liquidation_risk_score: Decimal = Decimal(0)
    optimization_suggestions: list[str] = field(default_factory=list)


@register
@dataclass
class TroveOperation(Record):
    kind: ClassVar[str] = "trove_operation"

    id: str
    tx_hash: str
    log_index: int
    trove: str
    operation: TroveOperationType
    collateral_before: int
    collateral_after: int
    debt_before: int
    debt_after: int
    collateral_change: int
    debt_change: int
    collateral_ratio: Decimal
    block_number: int
    timestamp: int


@register
@dataclass
class Liquidation(Record):
    kind: ClassVar[str] = "liquidation"

    id: str
    tx_hash: str
    log_index: int
    block_number: int
    timestamp: int
    liquidated_debt: int
    liquidated_collateral: int
    collateral_gas_compensation: int
    debt_gas_compensation: int
    liquidation_ratio: Decimal


@register
@dataclass
class Redemption(Record):
    """
    One redemption. actual_amount is the USDFC actually redeemed;
    collateral_sent is the FIL paid out to the redeemer.
    """

    kind: ClassVar[str] = "redemption"

    id: str
    tx_hash: str
    log_index: int
    block_number: int
    timestamp: int
    redeemer: str
    attempted_amount: int
    actual_amount: int
    collateral_sent: int
    collateral_fee: int


# -----------------------------------------------------------------------------
# Stability pool and staking
# -----------------------------------------------------------------------------


@register
@dataclass
class StabilityDeposit(Record):
    kind: ClassVar[str] = "stability_deposit"
    key_field: ClassVar[str] = "depositor"

    depositor: str
    current_deposit: int = 0
    total_deposited: int = 0
    total_withdrawn: int = 0
    total_collateral_gained: int = 0
    total_protocol_token_gained: int = 0
    first_deposit_timestamp: int = 0
    last_activity_timestamp: int = 0
    days_active: int = 0
    average_deposit: Decimal = Decimal(0)
    yield_rate: Decimal = Decimal(0)
    yield_observations: int = 0
    performance_score: Decimal = Decimal(100)
    risk_score: Decimal = Decimal(10)
    operation_count: int = 0


@register
@dataclass
class StabilityOperation(Record):
    kind: ClassVar[str] = "stability_operation"

    id: str
    tx_hash: str
    log_index: int
    depositor: str
    operation: StabilityOperationType
    amount: int
    deposit_before: int
    deposit_after: int
    collateral_gain: int
    protocol_token_gain: int
    block_number: int
    timestamp: int


@register
@dataclass
class ProtocolStake(Record):
    kind: ClassVar[str] = "protocol_stake"
    key_field: ClassVar[str] = "staker"

    staker: str
    stake: int = 0
    total_staked: int = 0
    total_unstaked: int = 0
    total_collateral_gained: int = 0
    total_stablecoin_gained: int = 0
    first_stake_timestamp: int = 0
    last_activity_timestamp: int = 0
    days_active: int = 0
    average_stake: Decimal = Decimal(0)
    yield_rate: Decimal = Decimal(0)
    yield_observations: int = 0
    performance_score: Decimal = Decimal(100)
    strategy: StakingStrategy = StakingStrategy.CONSERVATIVE
    operation_count: int = 0


@register
@dataclass
class StakeOperation(Record):
    kind: ClassVar[str] = "stake_operation"

    id: str
    tx_hash: str
    log_index: int
    staker: str
    operation: StakeOperationType
    amount: int
    stake_before: int
    stake_after: int
    collateral_gain: int
    stablecoin_gain: int
    block_number: int
    timestamp: int


# -----------------------------------------------------------------------------
# Price feed
# -----------------------------------------------------------------------------


@register
@dataclass
class PriceUpdate(Record):
    kind: ClassVar[str] = "price_update"

    id: str
    tx_hash: str
    log_index: int
    block_number: int
    timestamp: int
    price: int
    previous_price: int
    price_change: int
    price_change_percent: Decimal


@register
@dataclass
class MarketCondition(Record):
    """Daily OHLC of the collateral price, keyed by day id."""

    kind: ClassVar[str] = "market_condition"

    id: str
    date: str
    timestamp: int
    open_price: int = 0
    high_price: int = 0
    low_price: int = 0
    close_price: int = 0
    price_update_count: int = 0
    volatility: Decimal = Decimal(0)
    trend: TrendDirection = TrendDirection.NEUTRAL


# -----------------------------------------------------------------------------
# Global and daily stats
# -----------------------------------------------------------------------------


@register
@dataclass
class ProtocolStats(Record):
    """Protocol-wide singleton. All counters move by additive deltas."""

    kind: ClassVar[str] = "protocol_stats"

    id: str = GLOBAL_ID
    total_supply: int = 0
    holder_count: int = 0
    total_debt: int = 0
    total_collateral: int = 0
    active_trove_count: int = 0
    total_trove_count: int = 0
    lifetime_mint_count: int = 0
    lifetime_burn_count: int = 0
    lifetime_transfer_count: int = 0
    lifetime_liquidation_count: int = 0
    lifetime_redemption_count: int = 0
    total_volume: int = 0
    total_redemption_fees: int = 0
    total_stability_deposits: int = 0
    stability_depositor_count: int = 0
    total_staked: int = 0
    staker_count: int = 0
    current_price: int = 0
    last_price_timestamp: int = 0
    protocol_health: Decimal = Decimal(100)
    liquidation_risk: Decimal = Decimal(0)
    last_update_block: int = 0
    last_update_timestamp: int = 0


@register
@dataclass
class EcosystemStats(Record):
    kind: ClassVar[str] = "ecosystem_stats"

    id: str = GLOBAL_ID
    protocol_transaction_count: int = 0
    protocol_volume: int = 0
    dex_transaction_count: int = 0
    dex_volume: int = 0
    bridge_transaction_count: int = 0
    bridge_volume: int = 0
    p2p_transaction_count: int = 0
    p2p_volume: int = 0
    defi_transaction_count: int = 0
    defi_volume: int = 0
    institutional_transaction_count: int = 0
    institutional_volume: int = 0
    total_ecosystem_transaction_count: int = 0
    total_ecosystem_volume: int = 0
    user_count: int = 0
    last_update_timestamp: int = 0


@register
@dataclass
class DailyEcosystemStats(Record):
    """One per UTC day (day id = timestamp // 86400)."""

    kind: ClassVar[str] = "daily_ecosystem_stats"

    id: str
    date: str
    timestamp: int
    protocol_transaction_count: int = 0
    protocol_volume: int = 0
    dex_transaction_count: int = 0
    dex_volume: int = 0
    bridge_transaction_count: int = 0
    bridge_volume: int = 0
    p2p_transaction_count: int = 0
    p2p_volume: int = 0
    defi_transaction_count: int = 0
    defi_volume: int = 0
    institutional_transaction_count: int = 0
    institutional_volume: int = 0
    mint_count: int = 0
    burn_count: int = 0
    liquidation_count: int = 0
    redemption_count: int = 0
    trove_operation_count: int = 0
    stability_operation_count: int = 0
    stake_operation_count: int = 0
    total_ecosystem_transaction_count: int = 0
    total_ecosystem_volume: int = 0
    average_transaction_size: Decimal = Decimal(0)
    new_user_count: int = 0


# -----------------------------------------------------------------------------
# DEX and bridge satellites
# -----------------------------------------------------------------------------


@register
@dataclass
class DEXTrade(Record):
    kind: ClassVar[str] = "dex_trade"

    id: str
    tx_hash: str
    log_index: int
    block_number: int
    timestamp: int
    pool: str
    trader: str
    recipient: str
    trade_type: TradeType
    token_in: str
    token_out: str
    amount_in: int
    amount_out: int
    usdfc_amount: int
    volume_usd: Decimal
    fee_tier: int


@register
@dataclass
class PoolMetrics(Record):
    kind: ClassVar[str] = "pool_metrics"
    key_field: ClassVar[str] = "pool"

    pool: str
    token0: str = ""
    token1: str = ""
    fee_tier: int = 0
    volume_all_time_usd: Decimal = Decimal(0)
    usdfc_volume_all_time: int = 0
    tx_count_all_time: int = 0
    buy_count: int = 0
    sell_count: int = 0
    liquidity_event_count: int = 0
    last_trade_timestamp: int = 0


@register
@dataclass
class DEXProfile(Record):
    kind: ClassVar[str] = "dex_profile"
    key_field: ClassVar[str] = "trader"

    trader: str
    total_trades: int = 0
    total_volume_usd: Decimal = Decimal(0)
    largest_trade_usd: Decimal = Decimal(0)
    average_trade_size_usd: Decimal = Decimal(0)
    buy_count: int = 0
    sell_count: int = 0
    liquidity_operations: int = 0
    first_trade_timestamp: int = 0
    last_trade_timestamp: int = 0
    trading_frequency: TradingFrequency = TradingFrequency.INACTIVE


@register
@dataclass
class BridgeOperation(Record):
    """
    A cross-chain call. Outgoing calls are keyed by (tx_hash, log_index);
    gateway approvals and executions are keyed by their command id.
    """

    kind: ClassVar[str] = "bridge_operation"

    id: str
    tx_hash: str
    log_index: int
    block_number: int
    timestamp: int
    status: BridgeStatus
    sender: str = ""
    source_chain: str = ""
    destination_chain: str = ""
    destination_address: str = ""
    symbol: str = ""
    amount: int = 0
    payload_hash: str = ""
    command_id: str = ""
    approved_timestamp: int | None = None
    executed_timestamp: int | None = None


@register
@dataclass
class BridgeProfile(Record):
    kind: ClassVar[str] = "bridge_profile"
    key_field: ClassVar[str] = "user"

    user: str
    total_bridge_operations: int = 0
    total_bridge_volume: int = 0
    average_bridge_size: Decimal = Decimal(0)
    destination_chains: list[str] = field(default_factory=list)
    first_bridge_timestamp: int = 0
    last_bridge_timestamp: int = 0
