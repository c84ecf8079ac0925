"""
Pytest tests for DEX and bridge satellite records.
"""

from __future__ import annotations

import dataclasses
from decimal import Decimal

import pytest

from event_factory import ALICE, BOB, BRIDGE_GATEWAY, NOON, event, swap, tokens
from usdfc_analytics.config.settings import USDFC_AXLUSDC_POOL, USDFC_WFIL_POOL, WFIL_TOKEN, USDFC_TOKEN
from usdfc_analytics.core.enums import (
    BridgeStatus,
    EcosystemType,
    ProcessStatus,
    TradeType,
    TradingFrequency,
    TransferType,
)
from usdfc_analytics.database.models import BridgeOperation, BridgeProfile, DEXProfile, DEXTrade, PoolMetrics, Transaction
from usdfc_analytics.engine.ecosystem import trading_frequency


def test_trading_frequency_bands():
    assert trading_frequency(0) == TradingFrequency.INACTIVE
    assert trading_frequency(1) == TradingFrequency.OCCASIONAL
    assert trading_frequency(5) == TradingFrequency.REGULAR
    assert trading_frequency(49) == TradingFrequency.REGULAR
    assert trading_frequency(50) == TradingFrequency.ACTIVE
    assert trading_frequency(200) == TradingFrequency.VERY_ACTIVE


def test_buy_when_pool_pays_out_stablecoin(processor, store):
    """WFIL pool: token0 WFIL, token1 USDFC. Negative USDFC leg = recipient bought USDFC."""
    result = processor.process(swap(ALICE, BOB, tokens(80), -tokens(100)))
    assert result.status == ProcessStatus.APPLIED

    (trade,) = store.all(DEXTrade)
    assert trade.trade_type == TradeType.BUY
    assert trade.trader == BOB
    assert trade.token_in == WFIL_TOKEN
    assert trade.token_out == USDFC_TOKEN
    assert trade.amount_in == tokens(80)
    assert trade.amount_out == tokens(100)
    assert trade.usdfc_amount == tokens(100)
    assert trade.volume_usd == Decimal("99.00")
    assert trade.fee_tier == 500

    metrics = store.get(PoolMetrics, USDFC_WFIL_POOL)
    assert metrics.buy_count == 1
    assert metrics.sell_count == 0
    assert metrics.tx_count_all_time == 1
    assert metrics.volume_all_time_usd == Decimal("99.00")

    profile = store.get(DEXProfile, BOB)
    assert profile.total_trades == 1
    assert profile.largest_trade_usd == Decimal("99.00")
    assert profile.trading_frequency == TradingFrequency.OCCASIONAL

    (tx,) = store.all(Transaction)
    assert tx.ecosystem == EcosystemType.DEX_ECOSYSTEM
    assert tx.transfer_type == TransferType.DEX_SWAP_IN


def test_sell_on_stablecoin_token0_pool(processor, store):
    """axlUSDC pool: token0 USDFC. Positive USDFC leg flows into the pool = sell."""
    processor.process(swap(ALICE, ALICE, tokens(50), -tokens(49), pool=USDFC_AXLUSDC_POOL))
    processor.process(swap(ALICE, ALICE, tokens(150), -tokens(148), pool=USDFC_AXLUSDC_POOL, ts=NOON + 5))

    trades = store.all(DEXTrade)
    assert {t.trade_type for t in trades} == {TradeType.SELL}
    profile = store.get(DEXProfile, ALICE)
    assert profile.total_trades == 2
    assert profile.sell_count == 2
    assert profile.total_volume_usd == Decimal("198.00")
    assert profile.average_trade_size_usd == Decimal("99.00")
    assert profile.largest_trade_usd == Decimal("148.50")


def test_swap_on_unknown_pool_is_incomplete(processor, store):
    result = processor.process(swap(ALICE, BOB, 1, -1, pool="0x" + "1" * 40))
    assert result.status == ProcessStatus.APPLIED
    assert result.diagnostics
    assert store.all(DEXTrade) == []
    (tx,) = store.all(Transaction)
    assert tx.aggregation_complete is False


def test_pool_liquidity(processor, store):
    processor.process(event("PoolMint", source=USDFC_WFIL_POOL, owner=ALICE, amount0=tokens(10), amount1=tokens(13)))
    processor.process(
        event("PoolBurn", source=USDFC_WFIL_POOL, owner=ALICE, amount0=tokens(5), amount1=0, ts=NOON + 1)
    )
    trades = sorted(store.all(DEXTrade), key=lambda t: t.timestamp)
    assert [t.trade_type for t in trades] == [TradeType.ADD_LIQUIDITY, TradeType.REMOVE_LIQUIDITY]
    # 10 WFIL * 1.31 + 13 USDFC * 0.99
    assert trades[0].volume_usd == Decimal("25.97")
    assert trades[0].usdfc_amount == tokens(13)
    assert store.get(PoolMetrics, USDFC_WFIL_POOL).liquidity_event_count == 2
    assert store.get(DEXProfile, ALICE).liquidity_operations == 2
    assert store.get(DEXProfile, ALICE).total_trades == 0


def _bridge_call(name, sender, amount, chain="ethereum", symbol="USDFC", **kw):
    return event(
        name,
        source=BRIDGE_GATEWAY,
        sender=sender,
        destinationChain=chain,
        destinationContractAddress="0xdest",
        payloadHash="0xpayload",
        symbol=symbol,
        amount=amount,
        **kw,
    )


def test_bridge_calls_build_profile(processor, store):
    processor.process(_bridge_call("ContractCallWithToken", ALICE, tokens(100)))
    processor.process(_bridge_call("TokenSent", ALICE, tokens(50), chain="arbitrum", ts=NOON + 1))
    processor.process(_bridge_call("ContractCall", ALICE, tokens(7), chain="ethereum", symbol="WFIL", ts=NOON + 2))

    statuses = sorted((op.timestamp, op.status) for op in store.all(BridgeOperation))
    assert [s for _, s in statuses] == [BridgeStatus.INITIATED, BridgeStatus.SENT, BridgeStatus.INITIATED]

    profile = store.get(BridgeProfile, ALICE)
    assert profile.total_bridge_operations == 3
    assert profile.total_bridge_volume == tokens(150)
    assert profile.destination_chains == ["ethereum", "arbitrum"]
    assert profile.average_bridge_size == Decimal(tokens(150)) / 3
    assert profile.first_bridge_timestamp == NOON
    assert profile.last_bridge_timestamp == NOON + 2


def test_bridge_approval_then_execution(processor, store):
    processor.process(
        event(
            "ContractCallApproved",
            source=BRIDGE_GATEWAY,
            commandId="0xcmd1",
            sourceChain="ethereum",
            sourceAddress="0xsrc",
            contractAddress=ALICE,
            payloadHash="0xpayload",
        )
    )
    op = store.get(BridgeOperation, "0xcmd1")
    assert op.status == BridgeStatus.APPROVED
    assert op.approved_timestamp == NOON

    result = processor.process(event("ContractCallExecuted", source=BRIDGE_GATEWAY, commandId="0xcmd1", ts=NOON + 30))
    assert result.diagnostics == []
    op = store.get(BridgeOperation, "0xcmd1")
    assert op.status == BridgeStatus.EXECUTED
    assert op.executed_timestamp == NOON + 30
    assert op.source_chain == "ethereum"


def test_bridge_execution_without_approval(processor, store):
    result = processor.process(event("ContractCallExecuted", source=BRIDGE_GATEWAY, commandId="0xcmd2"))
    assert result.diagnostics
    assert store.get(BridgeOperation, "0xcmd2").status == BridgeStatus.EXECUTED


@pytest.fixture
def untracked_processor(store, settings):
    from usdfc_analytics.engine.processor import EventProcessor

    features = dataclasses.replace(settings.features, ecosystem_tracking=False)
    return EventProcessor(store, dataclasses.replace(settings, features=features))


def test_tracking_disabled_still_writes_ledger(untracked_processor, store):
    result = untracked_processor.process(swap(ALICE, BOB, tokens(80), -tokens(100)))
    assert result.status == ProcessStatus.APPLIED
    assert result.diagnostics
    assert store.all(DEXTrade) == []
    assert store.all(PoolMetrics) == []
    (tx,) = store.all(Transaction)
    assert tx.aggregation_complete is False
    assert tx.ecosystem == EcosystemType.DEX_ECOSYSTEM
