"""
Price feed updates and daily market conditions.

The previous price is the one stored on ProtocolStats.current_price, so a
replay from scratch sees the same sequence of changes.
"""

from __future__ import annotations

from usdfc_analytics.analytics import scoring
from usdfc_analytics.analytics.classifier import Classification
from usdfc_analytics.core.enums import EcosystemType, TransactionCategory
from usdfc_analytics.database.models import MarketCondition, PriceUpdate
from usdfc_analytics.engine import stats
from usdfc_analytics.engine.context import EventContext, LedgerEntry
from usdfc_analytics.ingestion.events import PriceUpdatedParams

PRICE_CLASSIFICATION = Classification(TransactionCategory.PRICE_UPDATE, EcosystemType.PROTOCOL_NATIVE)


def update_market_condition(ctx: EventContext, price: int) -> MarketCondition:
    """Fold one price observation into the day's open/high/low/close."""
    day = stats.day_id(ctx.timestamp)
    condition = ctx.uow.get(MarketCondition, str(day))
    if condition is None:
        condition = MarketCondition(
            id=str(day),
            date=stats.day_date(day),
            timestamp=day * stats.SECONDS_PER_DAY,
            open_price=price,
            high_price=price,
            low_price=price,
            close_price=price,
        )
    condition.high_price = max(condition.high_price, price)
    condition.low_price = min(condition.low_price, price)
    condition.close_price = price
    condition.price_update_count += 1
    condition.volatility = scoring.volatility(condition.open_price, condition.high_price, condition.low_price)
    condition.trend = scoring.price_trend(condition.open_price, condition.close_price)
    ctx.uow.put(condition)
    return condition


def handle_price_updated(ctx: EventContext, params: PriceUpdatedParams) -> LedgerEntry:
    event = ctx.event
    protocol = stats.protocol_stats(ctx.uow)
    previous = protocol.current_price
    change_percent = scoring.price_change_percent(previous, params.price)

    ctx.uow.put(
        PriceUpdate(
            id=event.event_id,
            tx_hash=event.tx_hash,
            log_index=event.log_index,
            block_number=event.block_number,
            timestamp=event.block_timestamp,
            price=params.price,
            previous_price=previous,
            price_change=params.price - previous if previous > 0 else 0,
            price_change_percent=change_percent,
        )
    )
    update_market_condition(ctx, params.price)

    if abs(change_percent) > ctx.settings.thresholds.significant_price_move_percent:
        ctx.log.info(
            "significant_price_move",
            previous_price=previous,
            price=params.price,
            change_percent=str(round(change_percent, 2)),
        )

    protocol.current_price = params.price
    protocol.last_price_timestamp = ctx.timestamp
    stats.refresh_protocol_health(protocol)
    ctx.uow.put(protocol)

    return LedgerEntry(
        from_address=event.source_contract,
        to_address=event.source_contract,
        value=params.price,
        classification=PRICE_CLASSIFICATION,
    )
