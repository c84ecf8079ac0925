"""
Pytest tests for scoring functions: trove metrics, positions, accounts, protocol and market.
"""

from __future__ import annotations

from decimal import Decimal

from event_factory import tokens
from usdfc_analytics.analytics import scoring
from usdfc_analytics.core.enums import RiskLevel, StakingStrategy, TrendDirection


def test_collateral_ratio_sentinel_without_debt():
    assert scoring.collateral_ratio(tokens(10), 0) == Decimal(99999)
    assert scoring.collateral_ratio(0, 0) == scoring.MAX_COLLATERAL_RATIO


def test_collateral_ratio_percent():
    assert scoring.collateral_ratio(tokens(2000), tokens(1000)) == Decimal(200)
    assert scoring.collateral_ratio(tokens(1100), tokens(1000)) == Decimal(110)


def test_health_bands_open_at_breakpoint():
    """110, 125 and 150 open their bands; CR 200 stays at 75, anything over 200 is 100."""
    assert scoring.health_score(Decimal("109.99")) == 0
    assert scoring.health_score(Decimal(110)) == 25
    assert scoring.health_score(Decimal("124.99")) == 25
    assert scoring.health_score(Decimal(125)) == 50
    assert scoring.health_score(Decimal("149.99")) == 50
    assert scoring.health_score(Decimal(150)) == 75
    assert scoring.health_score(Decimal(200)) == 75
    assert scoring.health_score(Decimal("200.01")) == 100


def test_risk_level_bands():
    assert scoring.risk_level(Decimal(99999)) == RiskLevel.VERY_LOW
    assert scoring.risk_level(Decimal(200)) == RiskLevel.LOW
    assert scoring.risk_level(Decimal(150)) == RiskLevel.MEDIUM
    assert scoring.risk_level(Decimal(120)) == RiskLevel.HIGH
    assert scoring.risk_level(Decimal(106)) == RiskLevel.VERY_HIGH
    assert scoring.risk_level(Decimal(105)) == RiskLevel.CRITICAL


def test_liquidation_price_and_safety_margin():
    assert scoring.liquidation_price(tokens(2000), tokens(1000)) == Decimal("0.55")
    assert scoring.liquidation_price(0, tokens(1)) == 0
    assert scoring.safety_margin(Decimal(200)) == 90
    assert scoring.safety_margin(Decimal(100)) == 0


def test_weighted_score_all_full_is_full():
    """All components at 100 must give exactly 100: divide by the weight sum."""
    weights = [Decimal("0.4"), Decimal("0.3"), Decimal("0.2"), Decimal("0.1")]
    assert scoring.weighted_score([Decimal(100)] * 4, weights) == 100
    assert scoring.trove_performance_score(Decimal(100), Decimal(100), 0, 30) == 100


def test_trove_performance_new_trove():
    # 0.4*75 + 0.3*100 + 0.2*100 + 0.1*0
    assert scoring.trove_performance_score(Decimal(75), Decimal(100), 0, 0) == 80


def test_risk_penalty_and_age_bonus_clamp():
    assert scoring.risk_penalty(3) == 70
    assert scoring.risk_penalty(20) == 0
    assert scoring.age_bonus(15) == 50
    assert scoring.age_bonus(90) == 100


def test_stability_score():
    assert scoring.stability_score(Decimal(200)) == 100
    assert scoring.stability_score(Decimal(120)) == 80


def test_optimization_suggestions():
    assert scoring.optimization_suggestions(Decimal(200), 0, 1, 10) == []
    low = scoring.optimization_suggestions(Decimal(120), 3, 1, 10)
    assert len(low) == 2


def test_smoothed_balance():
    assert scoring.smoothed_balance(Decimal(0), tokens(100), 0) == tokens(100)
    assert scoring.smoothed_balance(Decimal(tokens(100)), tokens(200), 3) == Decimal(tokens(110))


def test_annualized_and_smoothed_yield():
    observation = scoring.annualized_yield(tokens(1), Decimal(tokens(1000)))
    assert observation == Decimal("36.5")
    assert scoring.annualized_yield(tokens(1), Decimal(0)) == 0
    assert scoring.smoothed_yield(Decimal(0), observation, first_observation=True) == observation
    assert scoring.smoothed_yield(Decimal(10), Decimal(20), first_observation=False) == 12


def test_position_performance_score():
    assert scoring.position_performance_score(31, tokens(2000)) == 100
    assert scoring.position_performance_score(0, tokens(500)) == 25


def test_staking_strategy():
    assert scoring.staking_strategy(Decimal(tokens(200_000)), 400, Decimal(0)) == StakingStrategy.WHALE_LONG_TERM
    assert scoring.staking_strategy(Decimal(tokens(200_000)), 10, Decimal(0)) == StakingStrategy.WHALE_SHORT_TERM
    assert scoring.staking_strategy(Decimal(tokens(20_000)), 10, Decimal(15)) == StakingStrategy.YIELD_FOCUSED
    assert scoring.staking_strategy(Decimal(tokens(20_000)), 10, Decimal(5)) == StakingStrategy.BALANCED
    assert scoring.staking_strategy(Decimal(tokens(2_000)), 10, Decimal(0)) == StakingStrategy.EXPERIMENTAL
    assert scoring.staking_strategy(Decimal(tokens(2_000)), 60, Decimal(0)) == StakingStrategy.CONSERVATIVE
    assert scoring.staking_strategy(Decimal(tokens(10)), 60, Decimal(0)) == StakingStrategy.MINIMAL


def test_composability_and_influence():
    assert scoring.composability_score([1, 0, 0, 3, 0]) == 40
    assert scoring.composability_score([1, 1, 1, 1, 1]) == 100
    assert scoring.influence_score(tokens(5000), 20) == 7
    assert scoring.influence_score(tokens(10**9), 0) == 100


def test_protocol_health_zero_debt():
    assert scoring.protocol_health(tokens(100), 0, tokens(1)) == (100, 0)


def test_protocol_health_bands():
    # ratio exactly 2.0 is not above 2.0
    health, risk = scoring.protocol_health(tokens(200), tokens(100), tokens(1))
    assert health == 80
    assert risk == 55
    health, _ = scoring.protocol_health(tokens(300), tokens(100), tokens(1))
    assert health == 100
    health, risk = scoring.protocol_health(tokens(100), tokens(100), tokens(1))
    assert health == 10
    assert risk == 100


def test_price_change_volatility_trend():
    assert scoring.price_change_percent(0, tokens(5)) == 0
    assert scoring.price_change_percent(tokens(4), tokens(5)) == 25
    assert scoring.volatility(tokens(4), tokens(5), tokens(3)) == 50
    assert scoring.price_trend(tokens(100), tokens(103)) == TrendDirection.BULLISH
    assert scoring.price_trend(tokens(100), tokens(97)) == TrendDirection.BEARISH
    assert scoring.price_trend(tokens(100), tokens(102)) == TrendDirection.NEUTRAL


def test_days_between():
    assert scoring.days_between(0, 86_399) == 0
    assert scoring.days_between(0, 86_400 * 3) == 3
    assert scoring.days_between(100, 50) == 0
