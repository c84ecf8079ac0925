"""
Closed enumerations for every classification value the engine writes.

str-valued so records serialize to their plain names and invalid values fail
at construction time (TransactionCategory("TYPO") raises ValueError).
"""

from __future__ import annotations

from enum import Enum


class TransactionCategory(str, Enum):
    """What kind of protocol activity a ledger entry represents."""

    MINT = "MINT"
    BURN = "BURN"
    TRANSFER = "TRANSFER"
    APPROVAL = "APPROVAL"
    TROVE_OPERATION = "TROVE_OPERATION"
    LIQUIDATION = "LIQUIDATION"
    REDEMPTION = "REDEMPTION"
    STABILITY_OPERATION = "STABILITY_OPERATION"
    STAKING_OPERATION = "STAKING_OPERATION"
    DEX_SWAP = "DEX_SWAP"
    DEX_LIQUIDITY = "DEX_LIQUIDITY"
    BRIDGE_TRANSFER = "BRIDGE_TRANSFER"
    P2P_TRANSFER = "P2P_TRANSFER"
    PROTOCOL_INTEGRATION = "PROTOCOL_INTEGRATION"
    INSTITUTIONAL_OPERATION = "INSTITUTIONAL_OPERATION"
    PRICE_UPDATE = "PRICE_UPDATE"


class EcosystemType(str, Enum):
    """Which external system a transaction interacts with."""

    PROTOCOL_NATIVE = "PROTOCOL_NATIVE"
    DEX_ECOSYSTEM = "DEX_ECOSYSTEM"
    BRIDGE_ECOSYSTEM = "BRIDGE_ECOSYSTEM"
    DEFI_ECOSYSTEM = "DEFI_ECOSYSTEM"
    P2P_ECOSYSTEM = "P2P_ECOSYSTEM"
    INSTITUTIONAL_ECOSYSTEM = "INSTITUTIONAL_ECOSYSTEM"


class TransferType(str, Enum):
    """Direction-aware sub-type of a token transfer."""

    NORMAL = "NORMAL"
    MINT_TO_BORROWER = "MINT_TO_BORROWER"
    BURN_FROM_REPAYMENT = "BURN_FROM_REPAYMENT"
    LIQUIDATION_REWARD = "LIQUIDATION_REWARD"
    STABILITY_DEPOSIT = "STABILITY_DEPOSIT"
    STABILITY_WITHDRAWAL = "STABILITY_WITHDRAWAL"
    STAKING_OPERATION = "STAKING_OPERATION"
    DEX_SWAP_IN = "DEX_SWAP_IN"
    DEX_SWAP_OUT = "DEX_SWAP_OUT"
    BRIDGE_DEPOSIT = "BRIDGE_DEPOSIT"
    BRIDGE_WITHDRAWAL = "BRIDGE_WITHDRAWAL"
    DEFI_INTEGRATION = "DEFI_INTEGRATION"


class TransactionSource(str, Enum):
    TOKEN_TRANSFER = "TOKEN_TRANSFER"
    CONTRACT_EVENT = "CONTRACT_EVENT"


class ProtocolRole(str, Enum):
    """Role of a known protocol contract in the address book."""

    TROVE_MANAGER = "TROVE_MANAGER"
    STABILITY_POOL = "STABILITY_POOL"
    STAKING = "STAKING"
    BORROWER_OPERATIONS = "BORROWER_OPERATIONS"
    ACTIVE_POOL = "ACTIVE_POOL"
    PRICE_FEED = "PRICE_FEED"
    TOKEN = "TOKEN"


class TroveStatus(str, Enum):
    ACTIVE = "ACTIVE"
    CLOSED_BY_OWNER = "CLOSED_BY_OWNER"
    CLOSED_BY_LIQUIDATION = "CLOSED_BY_LIQUIDATION"


class TroveOperationType(str, Enum):
    OPEN = "OPEN"
    CLOSE = "CLOSE"
    ADD_COLLATERAL = "ADD_COLLATERAL"
    WITHDRAW_COLLATERAL = "WITHDRAW_COLLATERAL"
    BORROW = "BORROW"
    REPAY = "REPAY"
    ADJUST = "ADJUST"
    LIQUIDATE = "LIQUIDATE"


class StabilityOperationType(str, Enum):
    DEPOSIT = "DEPOSIT"
    WITHDRAW = "WITHDRAW"
    CLAIM_GAINS = "CLAIM_GAINS"


class StakeOperationType(str, Enum):
    STAKE = "STAKE"
    UNSTAKE = "UNSTAKE"
    CLAIM_GAINS = "CLAIM_GAINS"


class RiskLevel(str, Enum):
    """Six-tier trove risk banding by collateral ratio."""

    CRITICAL = "CRITICAL"
    VERY_HIGH = "VERY_HIGH"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    VERY_LOW = "VERY_LOW"


class StakingStrategy(str, Enum):
    WHALE_LONG_TERM = "WHALE_LONG_TERM"
    WHALE_SHORT_TERM = "WHALE_SHORT_TERM"
    YIELD_FOCUSED = "YIELD_FOCUSED"
    BALANCED = "BALANCED"
    EXPERIMENTAL = "EXPERIMENTAL"
    CONSERVATIVE = "CONSERVATIVE"
    MINIMAL = "MINIMAL"


class UserType(str, Enum):
    RETAIL_USER = "RETAIL_USER"
    POWER_USER = "POWER_USER"
    DEX_TRADER = "DEX_TRADER"
    BRIDGE_USER = "BRIDGE_USER"
    DEFI_USER = "DEFI_USER"
    PROTOCOL_NATIVE = "PROTOCOL_NATIVE"


class AmountTier(str, Enum):
    """Transfer size tiers, smallest first."""

    DUST = "DUST"
    MICRO = "MICRO"
    SMALL = "SMALL"
    MEDIUM = "MEDIUM"
    LARGE = "LARGE"
    WHALE = "WHALE"
    INSTITUTIONAL = "INSTITUTIONAL"


class TrendDirection(str, Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


class TradeType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    ADD_LIQUIDITY = "ADD_LIQUIDITY"
    REMOVE_LIQUIDITY = "REMOVE_LIQUIDITY"


class TradingFrequency(str, Enum):
    INACTIVE = "INACTIVE"
    OCCASIONAL = "OCCASIONAL"
    REGULAR = "REGULAR"
    ACTIVE = "ACTIVE"
    VERY_ACTIVE = "VERY_ACTIVE"


class BridgeStatus(str, Enum):
    """Lifecycle of a cross-chain call through the bridge gateway."""

    INITIATED = "INITIATED"
    SENT = "SENT"
    APPROVED = "APPROVED"
    EXECUTED = "EXECUTED"


class EventName(str, Enum):
    """Contract events the processor knows how to apply."""

    TRANSFER = "Transfer"
    TROVE_UPDATED = "TroveUpdated"
    TROVE_LIQUIDATED = "TroveLiquidated"
    LIQUIDATION = "Liquidation"
    REDEMPTION = "Redemption"
    USER_DEPOSIT_CHANGED = "UserDepositChanged"
    STABILITY_GAINS_WITHDRAWN = "StabilityGainsWithdrawn"
    STAKE_CHANGED = "StakeChanged"
    STAKING_GAINS_WITHDRAWN = "StakingGainsWithdrawn"
    LAST_GOOD_PRICE_UPDATED = "LastGoodPriceUpdated"
    SWAP = "Swap"
    POOL_MINT = "PoolMint"
    POOL_BURN = "PoolBurn"
    CONTRACT_CALL = "ContractCall"
    CONTRACT_CALL_WITH_TOKEN = "ContractCallWithToken"
    TOKEN_SENT = "TokenSent"
    CONTRACT_CALL_APPROVED = "ContractCallApproved"
    CONTRACT_CALL_EXECUTED = "ContractCallExecuted"


class ProcessStatus(str, Enum):
    """Outcome of processing one event."""

    APPLIED = "APPLIED"
    DUPLICATE = "DUPLICATE"
    SKIPPED = "SKIPPED"
