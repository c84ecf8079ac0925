"""
Pytest tests for global and daily stats aggregation.
"""

from __future__ import annotations

import pytest

from event_factory import ALICE, BOB, CAROL, DAY, DEX_ROUTER, NOON, burn, deposit_changed, mint, tokens, transfer
from usdfc_analytics.core.enums import EcosystemType, TroveStatus
from usdfc_analytics.core.exceptions import ConfigurationError
from usdfc_analytics.database.models import GLOBAL_ID, DailyEcosystemStats, EcosystemStats, ProtocolStats
from usdfc_analytics.engine import stats

BUCKETS = ("protocol", "dex", "bridge", "p2p", "defi", "institutional")


def test_day_id_and_date():
    assert stats.day_id(NOON) == 19675
    assert stats.day_date(19675) == "2023-11-14"
    assert stats.day_id(NOON - NOON % DAY) == stats.day_id(NOON)


def test_active_trove_delta_transitions():
    assert stats.active_trove_delta(None, TroveStatus.ACTIVE) == 1
    assert stats.active_trove_delta(None, TroveStatus.CLOSED_BY_OWNER) == 0
    assert stats.active_trove_delta(TroveStatus.ACTIVE, TroveStatus.ACTIVE) == 0
    assert stats.active_trove_delta(TroveStatus.ACTIVE, TroveStatus.CLOSED_BY_LIQUIDATION) == -1
    assert stats.active_trove_delta(TroveStatus.CLOSED_BY_OWNER, TroveStatus.ACTIVE) == 1


def test_apply_delta_unknown_field_is_configuration_error(store):
    with store.unit_of_work() as uow:
        with pytest.raises(ConfigurationError):
            stats.apply_delta(uow, stats.protocol_stats(uow), {"no_such_counter": 1})


def test_record_transfer_flow_counts_bucket_and_totals(store):
    with store.unit_of_work() as uow:
        stats.record_transfer_flow(uow, EcosystemType.DEX_ECOSYSTEM, tokens(30), NOON)
        stats.record_transfer_flow(uow, EcosystemType.INSTITUTIONAL_ECOSYSTEM, tokens(10), NOON)

    eco = store.get(EcosystemStats, GLOBAL_ID)
    assert eco.dex_transaction_count == 1
    assert eco.institutional_volume == tokens(10)
    assert eco.total_ecosystem_transaction_count == 2
    assert eco.total_ecosystem_volume == tokens(40)
    daily = store.get(DailyEcosystemStats, str(stats.day_id(NOON)))
    assert daily.average_transaction_size == tokens(20)
    assert daily.date == "2023-11-14"


def test_daily_stats_sum_to_global(processor, store):
    """Per-day buckets add up to the all-time buckets."""
    processor.process(mint(ALICE, tokens(3_000_000)))
    processor.process(transfer(ALICE, BOB, tokens(100), ts=NOON + 60))
    processor.process(transfer(BOB, CAROL, tokens(50), ts=NOON + DAY))
    processor.process(transfer(ALICE, DEX_ROUTER, tokens(10), ts=NOON + 2 * DAY))
    processor.process(transfer(ALICE, BOB, tokens(2_000_000), ts=NOON + 2 * DAY))
    processor.process(burn(CAROL, tokens(5), ts=NOON + 3 * DAY))

    eco = store.get(EcosystemStats, GLOBAL_ID)
    days = store.all(DailyEcosystemStats)
    assert len(days) == 4
    for bucket in BUCKETS:
        for suffix in ("transaction_count", "volume"):
            name = f"{bucket}_{suffix}"
            assert sum(getattr(d, name) for d in days) == getattr(eco, name), name
    assert sum(d.total_ecosystem_transaction_count for d in days) == eco.total_ecosystem_transaction_count == 6
    assert sum(d.new_user_count for d in days) == eco.user_count == 4
    assert sum(d.mint_count for d in days) == 1
    assert sum(d.burn_count for d in days) == 1


def test_supply_and_holders(processor, store):
    processor.process(mint(ALICE, tokens(1000)))
    processor.process(transfer(ALICE, BOB, tokens(400)))
    protocol = store.get(ProtocolStats, GLOBAL_ID)
    assert protocol.total_supply == tokens(1000)
    assert protocol.holder_count == 2
    assert protocol.lifetime_mint_count == 1
    assert protocol.lifetime_transfer_count == 2

    processor.process(burn(BOB, tokens(400)))
    protocol = store.get(ProtocolStats, GLOBAL_ID)
    assert protocol.total_supply == tokens(600)
    assert protocol.holder_count == 1
    assert protocol.lifetime_burn_count == 1


def test_non_transfer_events_do_not_add_ecosystem_volume(processor, store):
    processor.process(deposit_changed(ALICE, tokens(1000)))
    eco = store.get(EcosystemStats, GLOBAL_ID)
    assert eco.total_ecosystem_volume == 0
    assert eco.user_count == 1


def test_touch_tracks_latest_block(processor, store):
    processor.process(mint(ALICE, tokens(1), block=50))
    processor.process(mint(ALICE, tokens(1), block=40, ts=NOON - 10))
    protocol = store.get(ProtocolStats, GLOBAL_ID)
    assert protocol.last_update_block == 50
    assert protocol.last_update_timestamp == NOON
