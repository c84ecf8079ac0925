"""
Global and daily stats aggregation.

ProtocolStats / EcosystemStats are singletons keyed "global"; DailyEcosystemStats
is keyed by day id (timestamp // 86400). Records are created lazily with zero
counters and only ever move by additive deltas: nothing here rescans history.
Status-derived counters (active troves) change only on real transitions.
"""

from __future__ import annotations

from dataclasses import fields
from datetime import datetime, timezone
from decimal import Decimal
from typing import TypeVar

from usdfc_analytics.analytics import scoring
from usdfc_analytics.core.enums import EcosystemType, TroveStatus
from usdfc_analytics.core.exceptions import ConfigurationError
from usdfc_analytics.database.models import (
    GLOBAL_ID,
    DailyEcosystemStats,
    EcosystemStats,
    ProtocolStats,
    Record,
)
from usdfc_analytics.database.store import UnitOfWork

SECONDS_PER_DAY = 86400

R = TypeVar("R", bound=Record)

# Field prefix per ecosystem bucket, shared by EcosystemStats and DailyEcosystemStats
ECOSYSTEM_PREFIX: dict[EcosystemType, str] = {
    EcosystemType.PROTOCOL_NATIVE: "protocol",
    EcosystemType.DEX_ECOSYSTEM: "dex",
    EcosystemType.BRIDGE_ECOSYSTEM: "bridge",
    EcosystemType.P2P_ECOSYSTEM: "p2p",
    EcosystemType.DEFI_ECOSYSTEM: "defi",
    EcosystemType.INSTITUTIONAL_ECOSYSTEM: "institutional",
}


def day_id(timestamp: int) -> int:
    return timestamp // SECONDS_PER_DAY


def day_date(day: int) -> str:
    """ISO date (YYYY-MM-DD, UTC) of a day id."""
    return datetime.fromtimestamp(day * SECONDS_PER_DAY, tz=timezone.utc).date().isoformat()


def apply_delta(uow: UnitOfWork, record: R, field_deltas: dict[str, int | Decimal]) -> R:
    """
    Add each delta to the named numeric field and stage the record.

    Deltas only: callers compute the change, never the absolute value.
    An unknown field name is a wiring error and raises ConfigurationError.
    """
    names = {f.name for f in fields(record)}
    for name, delta in field_deltas.items():
        if name not in names:
            raise ConfigurationError(f"{record.kind} has no field {name}")
        if not delta:
            continue
        setattr(record, name, getattr(record, name) + delta)
    uow.put(record)
    return record


def protocol_stats(uow: UnitOfWork) -> ProtocolStats:
    stats = uow.get(ProtocolStats, GLOBAL_ID)
    if stats is None:
        stats = ProtocolStats()
        uow.put(stats)
    return stats


def ecosystem_stats(uow: UnitOfWork) -> EcosystemStats:
    stats = uow.get(EcosystemStats, GLOBAL_ID)
    if stats is None:
        stats = EcosystemStats()
        uow.put(stats)
    return stats


def daily_stats(uow: UnitOfWork, timestamp: int) -> DailyEcosystemStats:
    day = day_id(timestamp)
    stats = uow.get(DailyEcosystemStats, str(day))
    if stats is None:
        stats = DailyEcosystemStats(id=str(day), date=day_date(day), timestamp=day * SECONDS_PER_DAY)
        uow.put(stats)
    return stats


def record_transfer_flow(uow: UnitOfWork, ecosystem: EcosystemType, value: int, timestamp: int) -> None:
    """
    Count one token transfer into its ecosystem bucket and into the totals,
    globally and for the transfer's day. Every transfer reaches the totals.
    """
    prefix = ECOSYSTEM_PREFIX[ecosystem]
    deltas = {
        f"{prefix}_transaction_count": 1,
        f"{prefix}_volume": value,
        "total_ecosystem_transaction_count": 1,
        "total_ecosystem_volume": value,
    }
    eco = apply_delta(uow, ecosystem_stats(uow), deltas)
    eco.last_update_timestamp = timestamp

    daily = apply_delta(uow, daily_stats(uow, timestamp), deltas)
    daily.average_transaction_size = Decimal(daily.total_ecosystem_volume) / daily.total_ecosystem_transaction_count


def record_new_user(uow: UnitOfWork, timestamp: int) -> None:
    apply_delta(uow, ecosystem_stats(uow), {"user_count": 1})
    apply_delta(uow, daily_stats(uow, timestamp), {"new_user_count": 1})


def count_daily(uow: UnitOfWork, timestamp: int, field_name: str) -> None:
    apply_delta(uow, daily_stats(uow, timestamp), {field_name: 1})


def active_trove_delta(previous: TroveStatus | None, current: TroveStatus) -> int:
    """+1 when a trove becomes ACTIVE, -1 when it stops being ACTIVE, else 0."""
    was_active = previous == TroveStatus.ACTIVE
    is_active = current == TroveStatus.ACTIVE
    if is_active and not was_active:
        return 1
    if was_active and not is_active:
        return -1
    return 0


def refresh_protocol_health(stats: ProtocolStats) -> None:
    """Re-band protocol health from current totals; needs at least one price observation."""
    if stats.current_price <= 0:
        return
    stats.protocol_health, stats.liquidation_risk = scoring.protocol_health(
        stats.total_collateral, stats.total_debt, stats.current_price
    )


def touch(uow: UnitOfWork, block_number: int, timestamp: int) -> ProtocolStats:
    stats = protocol_stats(uow)
    stats.last_update_block = max(stats.last_update_block, block_number)
    stats.last_update_timestamp = max(stats.last_update_timestamp, timestamp)
    uow.put(stats)
    return stats
