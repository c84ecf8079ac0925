"""
Input boundary: validated event envelopes and event-specific parameter models.

Responsibilities:
- Validate every incoming event before any state is touched (negative amounts
  and missing keys are rejected here).
- Normalize addresses to lower case.
- Accept both snake_case names and the on-chain camelCase / underscore-prefixed
  parameter names (transactionHash, _borrower, _newDeposit, ...).
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import (
    AfterValidator,
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
)

from usdfc_analytics.config.settings import ZERO_ADDRESS
from usdfc_analytics.core.exceptions import InvalidEventError


def _normalize_address(value: str) -> str:
    value = (value or "").strip().lower()
    if not value:
        raise ValueError("address must be non-empty")
    return value


def _lower(value: str) -> str:
    return (value or "").strip().lower()


Address = Annotated[str, AfterValidator(_normalize_address)]
Lowered = Annotated[str, AfterValidator(_lower)]


def _alias(*names: str) -> AliasChoices:
    return AliasChoices(*names)


class ChainEvent(BaseModel):
    """
    One canonical contract event as delivered by the indexer.

    value is the event's primary amount in base units (the transfer value for
    Transfer events, 0 where the event carries no single amount).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    tx_hash: Lowered = Field(..., alias="transactionHash", min_length=1, description="Transaction hash")
    log_index: int = Field(..., alias="logIndex", ge=0)
    block_number: int = Field(..., alias="blockNumber", ge=0)
    block_timestamp: int = Field(..., alias="blockTimestamp", ge=0, description="Unix seconds")
    source_contract: Lowered = Field("", alias="sourceContractAddress", description="Emitting contract")
    event_name: str = Field(..., alias="eventName", min_length=1)
    from_address: Lowered = Field(ZERO_ADDRESS, alias="from")
    to_address: Lowered = Field(ZERO_ADDRESS, alias="to")
    value: int = Field(0, ge=0, description="Primary amount in base units")
    params: dict[str, Any] = Field(default_factory=dict, description="Event-specific parameters")

    @property
    def event_id(self) -> str:
        return f"{self.tx_hash}-{self.log_index}"


def parse_event(payload: ChainEvent | dict[str, Any]) -> ChainEvent:
    """Validate a raw payload. Raises InvalidEventError with the pydantic details."""
    if isinstance(payload, ChainEvent):
        return payload
    try:
        return ChainEvent.model_validate(payload)
    except ValidationError as e:
        event_id = None
        if isinstance(payload, dict):
            tx = payload.get("tx_hash") or payload.get("transactionHash")
            idx = payload.get("log_index", payload.get("logIndex"))
            event_id = f"{tx}-{idx}" if tx is not None else None
        raise InvalidEventError(_summarize(e), event_id=event_id) from e


def parse_params(model: type[BaseModel], event: ChainEvent) -> BaseModel:
    """Validate event.params against the event's parameter model."""
    try:
        return model.model_validate(event.params)
    except ValidationError as e:
        raise InvalidEventError(_summarize(e), event_id=event.event_id) from e


def _summarize(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        loc = ".".join(str(p) for p in item.get("loc", ())) or "event"
        parts.append(f"{loc}: {item.get('msg')}")
    return "; ".join(parts)


# -----------------------------------------------------------------------------
# Event-specific parameters
# -----------------------------------------------------------------------------


class EventParams(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class TransferParams(EventParams):
    """Transfers carry everything in the envelope (from, to, value)."""


class TroveUpdatedParams(EventParams):
    borrower: Address = Field(..., validation_alias=_alias("borrower", "_borrower"))
    debt: int = Field(..., ge=0, validation_alias=_alias("debt", "_debt"))
    coll: int = Field(..., ge=0, validation_alias=_alias("coll", "collateral", "_coll"))
    stake: int = Field(0, ge=0, validation_alias=_alias("stake", "_stake"))
    operation: int = Field(0, ge=0, validation_alias=_alias("operation", "_operation"))


class TroveLiquidatedParams(EventParams):
    borrower: Address = Field(..., validation_alias=_alias("borrower", "_borrower"))
    debt: int = Field(0, ge=0, validation_alias=_alias("debt", "_debt"))
    coll: int = Field(0, ge=0, validation_alias=_alias("coll", "collateral", "_coll"))


class LiquidationParams(EventParams):
    liquidated_debt: int = Field(..., ge=0, validation_alias=_alias("liquidated_debt", "_liquidatedDebt"))
    liquidated_collateral: int = Field(
        ..., ge=0, validation_alias=_alias("liquidated_collateral", "liquidated_coll", "_liquidatedColl")
    )
    collateral_gas_compensation: int = Field(
        0, ge=0, validation_alias=_alias("collateral_gas_compensation", "_collGasCompensation")
    )
    debt_gas_compensation: int = Field(
        0, ge=0, validation_alias=_alias("debt_gas_compensation", "_LUSDGasCompensation", "_debtGasCompensation")
    )


class RedemptionParams(EventParams):
    redeemer: str = Field("", validation_alias=_alias("redeemer", "_redeemer"))
    attempted_amount: int = Field(
        ..., ge=0, validation_alias=_alias("attempted_amount", "_attemptedLUSDAmount", "_attemptedDebtAmount")
    )
    actual_amount: int = Field(
        ..., ge=0, validation_alias=_alias("actual_amount", "_actualLUSDAmount", "_actualDebtAmount")
    )
    collateral_sent: int = Field(0, ge=0, validation_alias=_alias("collateral_sent", "_ETHSent", "_FILSent"))
    collateral_fee: int = Field(0, ge=0, validation_alias=_alias("collateral_fee", "_ETHFee", "_FILFee"))


class DepositChangedParams(EventParams):
    depositor: Address = Field(..., validation_alias=_alias("depositor", "_depositor"))
    new_deposit: int = Field(..., ge=0, validation_alias=_alias("new_deposit", "_newDeposit"))


class StabilityGainsParams(EventParams):
    depositor: Address = Field(..., validation_alias=_alias("depositor", "_depositor"))
    collateral_gain: int = Field(..., ge=0, validation_alias=_alias("collateral_gain", "_ETH", "_FIL"))
    protocol_token_gain: int = Field(0, ge=0, validation_alias=_alias("protocol_token_gain", "_LQTY"))
    debt_loss: int = Field(0, ge=0, validation_alias=_alias("debt_loss", "_LUSDLoss"))


class StakeChangedParams(EventParams):
    staker: Address = Field(..., validation_alias=_alias("staker", "_staker"))
    new_stake: int = Field(..., ge=0, validation_alias=_alias("new_stake", "_newStake"))


class StakingGainsParams(EventParams):
    staker: Address = Field(..., validation_alias=_alias("staker", "_staker"))
    stablecoin_gain: int = Field(0, ge=0, validation_alias=_alias("stablecoin_gain", "_LUSDGain", "_USDFCGain"))
    collateral_gain: int = Field(0, ge=0, validation_alias=_alias("collateral_gain", "_ETHGain", "_FILGain"))


class PriceUpdatedParams(EventParams):
    price: int = Field(..., gt=0, validation_alias=_alias("price", "_lastGoodPrice"))


class SwapParams(EventParams):
    """Uniswap V3 style swap; positive amounts flow into the pool, negative out of it."""

    sender: Address
    recipient: Address
    amount0: int
    amount1: int


class PoolLiquidityParams(EventParams):
    owner: Address
    amount0: int = Field(..., ge=0)
    amount1: int = Field(..., ge=0)


class BridgeCallParams(EventParams):
    sender: Address
    destination_chain: str = Field(..., min_length=1, validation_alias=_alias("destination_chain", "destinationChain"))
    destination_address: str = Field(
        "",
        validation_alias=_alias(
            "destination_address", "destinationAddress", "destination_contract_address", "destinationContractAddress"
        ),
    )
    payload_hash: str = Field("", validation_alias=_alias("payload_hash", "payloadHash"))
    symbol: str = ""
    amount: int = Field(0, ge=0)


class BridgeApprovedParams(EventParams):
    command_id: str = Field(..., min_length=1, validation_alias=_alias("command_id", "commandId"))
    source_chain: str = Field("", validation_alias=_alias("source_chain", "sourceChain"))
    source_address: str = Field("", validation_alias=_alias("source_address", "sourceAddress"))
    contract_address: str = Field("", validation_alias=_alias("contract_address", "contractAddress"))
    payload_hash: str = Field("", validation_alias=_alias("payload_hash", "payloadHash"))


class BridgeExecutedParams(EventParams):
    command_id: str = Field(..., min_length=1, validation_alias=_alias("command_id", "commandId"))
