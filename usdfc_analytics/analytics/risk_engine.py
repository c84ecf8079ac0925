"""
Risk engine: amount tiers and per-transfer risk scores.

Score = amount-tier weight + new-account risk for each party with little
history, then the off-hours multiplier applied once on the accumulated total.
Result is clamped to [0, 100] and returned with the flags that drove it.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from usdfc_analytics.analytics.scoring import SECONDS_PER_DAY, clamp
from usdfc_analytics.config.settings import Thresholds
from usdfc_analytics.core.enums import AmountTier
from usdfc_analytics.usdfc_logging import get_logger

logger = get_logger(__name__)

FLAG_NEW_SENDER = "new_sender"
FLAG_NEW_RECEIVER = "new_receiver"
FLAG_OFF_HOURS = "off_hours"
FLAG_LARGE_AMOUNT = "large_amount"

LARGE_TIERS = (AmountTier.WHALE, AmountTier.INSTITUTIONAL)


def amount_tier(amount: int, thresholds: Thresholds) -> AmountTier:
    """
    Tier for an amount in base units. Strict less-than at each bound, so an
    amount equal to a bound falls into the next tier up.
    """
    for tier, upper in thresholds.tier_bounds:
        if amount < upper:
            return tier
    return AmountTier.INSTITUTIONAL


def hour_of_day(timestamp: int) -> int:
    """UTC hour for a unix timestamp."""
    return (timestamp % SECONDS_PER_DAY) // 3600


def is_off_hours(timestamp: int, thresholds: Thresholds) -> bool:
    """True for hours in [start, 24) or [0, end]."""
    hour = hour_of_day(timestamp)
    return hour >= thresholds.off_hours_start or hour <= thresholds.off_hours_end


def transfer_risk_score(
    value: int,
    sender_tx_count: int | None,
    receiver_tx_count: int | None,
    timestamp: int,
    thresholds: Thresholds,
) -> dict[str, Any]:
    """
    Compute the risk score of one transfer.

    sender_tx_count / receiver_tx_count are the parties' prior transaction counts;
    None means the party is not an account (zero address) and adds no risk.
    Returns: {"score": Decimal, "amount_tier": AmountTier, "off_hours": bool, "flags": [...]}.
    """
    flags: list[str] = []
    tier = amount_tier(value, thresholds)
    score = Decimal(thresholds.risk_weight(tier))
    if tier in LARGE_TIERS:
        flags.append(FLAG_LARGE_AMOUNT)

    if sender_tx_count is not None and sender_tx_count < thresholds.new_account_tx_count:
        score += thresholds.new_account_risk
        flags.append(FLAG_NEW_SENDER)
    if receiver_tx_count is not None and receiver_tx_count < thresholds.new_account_tx_count:
        score += thresholds.new_account_risk
        flags.append(FLAG_NEW_RECEIVER)

    off_hours = is_off_hours(timestamp, thresholds)
    if off_hours:
        score *= thresholds.off_hours_multiplier
        flags.append(FLAG_OFF_HOURS)

    return {"score": clamp(score), "amount_tier": tier, "off_hours": off_hours, "flags": flags}
