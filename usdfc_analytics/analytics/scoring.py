"""
Scoring functions for positions, accounts, and protocol health.

All functions are pure: they take plain values (snapshots of entity state)
and return Decimals. Scores are clamped to [0, 100]; ratios are percentages
(100 = 100%). Division by zero never escapes: ratio helpers return sentinels.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Sequence

from usdfc_analytics.config.settings import ONE_TOKEN
from usdfc_analytics.core.enums import RiskLevel, StakingStrategy, TrendDirection

ZERO = Decimal(0)
HUNDRED = Decimal(100)

# Collateral ratio reported for debt-free positions ("no liquidation risk")
MAX_COLLATERAL_RATIO = Decimal(99999)
MINIMUM_COLLATERAL_RATIO = Decimal(110)
LIQUIDATION_PRICE_FACTOR = Decimal("1.1")

# Trove performance weights
WEIGHT_HEALTH = Decimal("0.4")
WEIGHT_STABILITY = Decimal("0.3")
WEIGHT_RISK_PENALTY = Decimal("0.2")
WEIGHT_AGE_BONUS = Decimal("0.1")

# Exponential smoothing
BALANCE_HISTORY_WEIGHT = Decimal("0.9")
BALANCE_CURRENT_WEIGHT = Decimal("0.1")
YIELD_HISTORY_WEIGHT = Decimal("0.8")
YIELD_OBSERVATION_WEIGHT = Decimal("0.2")

SECONDS_PER_DAY = 86400
DAYS_PER_YEAR = 365

TREND_THRESHOLD_PERCENT = Decimal(2)


def clamp(value: Decimal | int, low: Decimal | int = ZERO, high: Decimal | int = HUNDRED) -> Decimal:
    """Clamp to [low, high] and return a Decimal."""
    value = Decimal(value)
    if value < low:
        return Decimal(low)
    if value > high:
        return Decimal(high)
    return value


def to_tokens(amount: int | Decimal) -> Decimal:
    """Base units (18 decimals) to whole tokens."""
    return Decimal(amount) / ONE_TOKEN


def days_between(start_ts: int, end_ts: int) -> int:
    if end_ts <= start_ts:
        return 0
    return (end_ts - start_ts) // SECONDS_PER_DAY


# -----------------------------------------------------------------------------
# Trove metrics
# -----------------------------------------------------------------------------


def collateral_ratio(collateral: int, debt: int) -> Decimal:
    """collateral / debt * 100; MAX_COLLATERAL_RATIO when debt is zero."""
    if debt <= 0:
        return MAX_COLLATERAL_RATIO
    return Decimal(collateral) / Decimal(debt) * HUNDRED


def health_score(cr: Decimal) -> Decimal:
    """
    Step function of collateral ratio: 0 / 25 / 50 / 75 / 100.

    Each breakpoint opens its band (110 scores 25, 150 scores 75), except
    200, which stays in the 75 band: only a ratio above 200 scores 100.
    """
    if cr < 110:
        return ZERO
    if cr < 125:
        return Decimal(25)
    if cr < 150:
        return Decimal(50)
    if cr <= 200:
        return Decimal(75)
    return Decimal(100)


def risk_level(cr: Decimal) -> RiskLevel:
    if cr > 200:
        return RiskLevel.VERY_LOW
    if cr > 150:
        return RiskLevel.LOW
    if cr > 125:
        return RiskLevel.MEDIUM
    if cr > 110:
        return RiskLevel.HIGH
    if cr > 105:
        return RiskLevel.VERY_HIGH
    return RiskLevel.CRITICAL


def liquidation_price(collateral: int, debt: int) -> Decimal:
    """Collateral price at which the trove hits the 110% minimum; 0 without debt or collateral."""
    if debt <= 0 or collateral <= 0:
        return ZERO
    return Decimal(debt) * LIQUIDATION_PRICE_FACTOR / Decimal(collateral)


def safety_margin(cr: Decimal) -> Decimal:
    """Percentage points above the 110% minimum; 0 at or below it."""
    if cr > MINIMUM_COLLATERAL_RATIO:
        return cr - MINIMUM_COLLATERAL_RATIO
    return ZERO


def stability_score(lowest_cr: Decimal) -> Decimal:
    if lowest_cr > 150:
        return HUNDRED
    return clamp(lowest_cr / Decimal("1.5"))


def weighted_score(components: Sequence[Decimal], weights: Sequence[Decimal]) -> Decimal:
    """Weighted average of components, divided by the weight sum."""
    total_weight = sum(weights, ZERO)
    if total_weight == 0:
        return ZERO
    total = sum((Decimal(c) * w for c, w in zip(components, weights)), ZERO)
    return total / total_weight


def risk_penalty(risk_events: int) -> Decimal:
    return clamp(HUNDRED - Decimal(risk_events) * 10)


def age_bonus(days_open: int) -> Decimal:
    return min(HUNDRED, Decimal(days_open) / 30 * HUNDRED)


def trove_performance_score(health: Decimal, stability: Decimal, risk_events: int, days_open: int) -> Decimal:
    """40% health, 30% stability, 20% risk-event penalty, 10% age bonus."""
    return clamp(
        weighted_score(
            [health, stability, risk_penalty(risk_events), age_bonus(days_open)],
            [WEIGHT_HEALTH, WEIGHT_STABILITY, WEIGHT_RISK_PENALTY, WEIGHT_AGE_BONUS],
        )
    )


def liquidation_risk_score(cr: Decimal, risk_events: int, operation_count: int, days_open: int) -> Decimal:
    """Mean of CR-based risk, historical risk events, and operation-frequency volatility."""
    cr_risk = clamp(MINIMUM_COLLATERAL_RATIO / (Decimal(cr) + 1) * HUNDRED)
    history_risk = clamp(Decimal(risk_events) * 15)
    volatility_risk = clamp(Decimal(operation_count) / Decimal(days_open + 1) * 10)
    return (cr_risk + history_risk + volatility_risk) / 3


def optimization_suggestions(cr: Decimal, risk_events: int, operation_count: int, days_open: int) -> list[str]:
    suggestions: list[str] = []
    if cr < 150:
        suggestions.append("Consider adding collateral to improve safety margin")
    if cr > 300:
        suggestions.append("High collateral ratio: consider borrowing more for capital efficiency")
    if risk_events > 2:
        suggestions.append("Multiple risk events: consider maintaining a higher collateral ratio")
    if operation_count > 20 and days_open < 30:
        suggestions.append("High operation frequency: consider fewer, larger adjustments")
    return suggestions


# -----------------------------------------------------------------------------
# Deposits and stakes
# -----------------------------------------------------------------------------


def smoothed_balance(previous_average: Decimal, current: int, days_active: int) -> Decimal:
    """90/10 exponential smoothing once the position is at least a day old."""
    if days_active > 0:
        return Decimal(previous_average) * BALANCE_HISTORY_WEIGHT + Decimal(current) * BALANCE_CURRENT_WEIGHT
    return Decimal(current)


def annualized_yield(gain: int, average_balance: Decimal) -> Decimal:
    """gain / average balance, annualized, as a percentage. 0 for an empty average."""
    if average_balance <= 0:
        return ZERO
    daily_yield = Decimal(gain) / Decimal(average_balance)
    return daily_yield * DAYS_PER_YEAR * HUNDRED


def smoothed_yield(previous: Decimal, observation: Decimal, first_observation: bool) -> Decimal:
    if first_observation:
        return observation
    return previous * YIELD_HISTORY_WEIGHT + observation * YIELD_OBSERVATION_WEIGHT


def position_performance_score(days_active: int, current_balance: int) -> Decimal:
    """Half consistency-by-duration, half size, capped at 100."""
    consistency = HUNDRED if days_active > 30 else Decimal(days_active) * Decimal("3.33")
    size = HUNDRED if current_balance > 1000 * ONE_TOKEN else Decimal(current_balance) / (10 * ONE_TOKEN)
    return min(HUNDRED, (consistency + size) / 2)


def staking_strategy(average_stake: Decimal, days_active: int, yield_rate: Decimal) -> StakingStrategy:
    tokens = to_tokens(average_stake)
    if tokens > 100_000:
        return StakingStrategy.WHALE_LONG_TERM if days_active > 365 else StakingStrategy.WHALE_SHORT_TERM
    if tokens > 10_000:
        return StakingStrategy.YIELD_FOCUSED if yield_rate > 10 else StakingStrategy.BALANCED
    if tokens > 1_000:
        return StakingStrategy.EXPERIMENTAL if days_active < 30 else StakingStrategy.CONSERVATIVE
    return StakingStrategy.MINIMAL


# -----------------------------------------------------------------------------
# Accounts
# -----------------------------------------------------------------------------


def composability_score(ecosystem_counts: Iterable[int]) -> Decimal:
    """20 points per ecosystem with any activity, capped at 100."""
    touched = sum(1 for count in ecosystem_counts if count > 0)
    return min(HUNDRED, Decimal(touched * 20))


def influence_score(total_volume: int, total_activity: int) -> Decimal:
    """Volume in thousands of tokens plus activity in tens of events, clamped."""
    return clamp(to_tokens(total_volume) / 1000 + Decimal(total_activity) / 10)


# -----------------------------------------------------------------------------
# Protocol and market
# -----------------------------------------------------------------------------


def system_collateral_ratio(total_collateral: int, total_debt: int, price: int) -> Decimal | None:
    """Collateral value over debt as a plain ratio (2.0 = 200%). None without debt."""
    if total_debt <= 0:
        return None
    return Decimal(total_collateral) * Decimal(price) / ONE_TOKEN / Decimal(total_debt)


def protocol_health(total_collateral: int, total_debt: int, price: int) -> tuple[Decimal, Decimal]:
    """
    Banded protocol health and liquidation risk from the system-wide collateral ratio.

    price is the collateral price in 18-decimal fixed point. Returns (health, liquidation_risk).
    """
    ratio = system_collateral_ratio(total_collateral, total_debt, price)
    if ratio is None:
        return HUNDRED, ZERO
    if ratio > 2:
        health = HUNDRED
    elif ratio > Decimal("1.5"):
        health = Decimal(80)
    elif ratio > Decimal("1.2"):
        health = Decimal(60)
    elif ratio > Decimal("1.1"):
        health = Decimal(30)
    else:
        health = Decimal(10)
    if ratio <= 0:
        return health, HUNDRED
    return health, clamp(MINIMUM_COLLATERAL_RATIO / (ratio * HUNDRED) * HUNDRED)


def price_change_percent(previous: int, current: int) -> Decimal:
    if previous <= 0:
        return ZERO
    return Decimal(current - previous) / Decimal(previous) * HUNDRED


def volatility(open_price: int, high: int, low: int) -> Decimal:
    if open_price <= 0:
        return ZERO
    return Decimal(high - low) / Decimal(open_price) * HUNDRED


def price_trend(open_price: int, close_price: int) -> TrendDirection:
    change = price_change_percent(open_price, close_price)
    if change > TREND_THRESHOLD_PERCENT:
        return TrendDirection.BULLISH
    if change < -TREND_THRESHOLD_PERCENT:
        return TrendDirection.BEARISH
    return TrendDirection.NEUTRAL
