"""
Pytest tests for trove lifecycle, liquidations and redemptions, driven through the processor.
"""

from __future__ import annotations

from decimal import Decimal

from event_factory import ALICE, BOB, CAROL, DAY, NOON, liquidation, redemption, tokens, trove_liquidated, trove_updated
from usdfc_analytics.core.enums import RiskLevel, TroveOperationType, TroveStatus
from usdfc_analytics.database.models import (
    GLOBAL_ID,
    Account,
    Liquidation,
    ProtocolStats,
    Redemption,
    Transaction,
    Trove,
    TroveOperation,
)


def _protocol(store) -> ProtocolStats:
    return store.get(ProtocolStats, GLOBAL_ID)


def test_open_trove_metrics(processor, store):
    processor.process(trove_updated(ALICE, tokens(2000), tokens(1000)))

    trove = store.get(Trove, ALICE)
    assert trove.status == TroveStatus.ACTIVE
    assert trove.collateral_ratio == 200
    assert trove.health_score == 75
    assert trove.risk_level == RiskLevel.LOW
    assert trove.liquidation_price == Decimal("0.55")
    assert trove.safety_margin == 90
    assert trove.performance_score == 80
    assert trove.total_borrowed == tokens(1000)
    assert trove.total_collateral_added == tokens(2000)

    protocol = _protocol(store)
    assert protocol.active_trove_count == 1
    assert protocol.total_trove_count == 1
    assert protocol.total_debt == tokens(1000)
    assert protocol.total_collateral == tokens(2000)


def test_active_count_moves_only_on_transitions(processor, store):
    """Debt 0 -> 500 -> 600 -> 550 -> 0: one open, one close, nothing in between."""
    coll = tokens(2000)
    counts = []
    for i, debt in enumerate((500, 600, 550, 0)):
        processor.process(trove_updated(ALICE, coll, tokens(debt), ts=NOON + i))
        counts.append(_protocol(store).active_trove_count)
    assert counts == [1, 1, 1, 0]

    ops = sorted(store.all(TroveOperation), key=lambda op: op.timestamp)
    assert [op.operation for op in ops] == [
        TroveOperationType.OPEN,
        TroveOperationType.BORROW,
        TroveOperationType.REPAY,
        TroveOperationType.CLOSE,
    ]
    trove = store.get(Trove, ALICE)
    assert trove.status == TroveStatus.CLOSED_BY_OWNER
    assert trove.collateral_ratio == Decimal(99999)
    assert trove.total_repaid == tokens(600)
    assert _protocol(store).total_debt == 0
    assert _protocol(store).total_trove_count == 1


def test_adjustments_named_by_side(processor, store):
    processor.process(trove_updated(ALICE, tokens(2000), tokens(1000)))
    processor.process(trove_updated(ALICE, tokens(2500), tokens(1000)))
    processor.process(trove_updated(ALICE, tokens(2400), tokens(1000)))
    processor.process(trove_updated(ALICE, tokens(3000), tokens(1200)))
    ops = [op.operation for op in sorted(store.all(TroveOperation), key=lambda op: op.id)]
    assert sorted(ops) == sorted(
        [
            TroveOperationType.OPEN,
            TroveOperationType.ADD_COLLATERAL,
            TroveOperationType.WITHDRAW_COLLATERAL,
            TroveOperationType.ADJUST,
        ]
    )


def test_reopen_counts_active_again(processor, store):
    processor.process(trove_updated(ALICE, tokens(2000), tokens(1000)))
    processor.process(trove_updated(ALICE, 0, 0, ts=NOON + 1))
    processor.process(trove_updated(ALICE, tokens(3000), tokens(1000), ts=NOON + DAY))

    trove = store.get(Trove, ALICE)
    assert trove.status == TroveStatus.ACTIVE
    assert trove.reopen_count == 1
    assert trove.closed_at_timestamp is None
    assert _protocol(store).active_trove_count == 1
    assert _protocol(store).total_trove_count == 1


def test_running_ratio_ignores_zero_debt_updates(processor, store):
    processor.process(trove_updated(ALICE, tokens(2000), tokens(1000)))
    processor.process(trove_updated(ALICE, tokens(3000), tokens(1000)))
    processor.process(trove_updated(ALICE, 0, 0))

    trove = store.get(Trove, ALICE)
    assert trove.operation_count == 3
    assert trove.debt_ratio_samples == 2
    assert trove.average_collateral_ratio == 250
    assert trove.lowest_collateral_ratio == 200


def test_low_ratio_update_is_a_risk_event(processor, store):
    processor.process(trove_updated(ALICE, tokens(1100), tokens(1000)))
    trove = store.get(Trove, ALICE)
    assert trove.risk_events == 1
    assert trove.risk_level == RiskLevel.VERY_HIGH
    assert trove.health_score == 25
    assert trove.optimization_suggestions


def test_liquidation_closes_trove_and_summary_reduces_totals(processor, store):
    processor.process(trove_updated(ALICE, tokens(2000), tokens(1000)))
    processor.process(trove_updated(BOB, tokens(1150), tokens(1000)))
    performance_before = store.get(Trove, BOB).performance_score

    processor.process(trove_liquidated(BOB, tokens(1150), tokens(1000), ts=NOON + 60))
    bob = store.get(Trove, BOB)
    assert bob.status == TroveStatus.CLOSED_BY_LIQUIDATION
    assert bob.debt == 0
    assert bob.collateral == 0
    assert bob.liquidation_count == 1
    assert bob.performance_score < performance_before
    assert _protocol(store).active_trove_count == 1
    # Totals move with the batch summary, not the per-trove event
    assert _protocol(store).total_debt == tokens(2000)

    processor.process(liquidation(tokens(1000), tokens(1150), ts=NOON + 60))
    protocol = _protocol(store)
    assert protocol.total_debt == tokens(1000)
    assert protocol.total_collateral == tokens(2000)
    assert protocol.lifetime_liquidation_count == 1
    (record,) = store.all(Liquidation)
    assert record.liquidation_ratio == 115


def test_zero_update_after_liquidation_keeps_status(processor, store):
    processor.process(trove_updated(ALICE, tokens(1150), tokens(1000)))
    processor.process(trove_liquidated(ALICE, tokens(1150), tokens(1000)))
    processor.process(trove_updated(ALICE, 0, 0))

    assert store.get(Trove, ALICE).status == TroveStatus.CLOSED_BY_LIQUIDATION
    assert _protocol(store).active_trove_count == 0


def test_liquidated_unknown_trove_is_recorded_incomplete(processor, store):
    result = processor.process(trove_liquidated(CAROL, tokens(10), tokens(5)))
    assert result.diagnostics
    (tx,) = store.all(Transaction)
    assert tx.aggregation_complete is False
    assert tx.diagnostics == result.diagnostics
    assert store.get(Trove, CAROL) is None


def test_redemption_record_and_fees(processor, store):
    processor.process(trove_updated(ALICE, tokens(2000), tokens(1000)))
    processor.process(redemption(BOB, tokens(300), tokens(250), tokens(240), tokens(2)))

    (record,) = store.all(Redemption)
    assert record.redeemer == BOB
    assert record.attempted_amount == tokens(300)
    assert record.actual_amount == tokens(250)
    assert record.collateral_sent == tokens(240)
    assert record.collateral_fee == tokens(2)

    protocol = _protocol(store)
    assert protocol.lifetime_redemption_count == 1
    assert protocol.total_redemption_fees == tokens(2)
    # Debt moves through the redeemed troves' own TroveUpdated events
    assert protocol.total_debt == tokens(1000)
    assert store.get(Account, BOB).protocol_operation_count == 1


def test_borrower_credited_once_per_update(processor, store):
    processor.process(trove_updated(ALICE, tokens(2000), tokens(1000)))
    processor.process(trove_updated(ALICE, tokens(2000), tokens(900)))
    account = store.get(Account, ALICE)
    assert account.total_transaction_count == 2
    assert account.protocol_operation_count == 2
    assert account.balance == 0
