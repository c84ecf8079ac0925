"""
Token transfer handling: the one event that moves balances.

Classifies the transfer, moves the balance, credits sender and receiver once
each, writes the Transfer record, and feeds supply, holder, volume and
ecosystem rollups.
"""

from __future__ import annotations

from decimal import Decimal

from usdfc_analytics.analytics.classifier import classify
from usdfc_analytics.analytics.risk_engine import amount_tier, transfer_risk_score
from usdfc_analytics.core.enums import TransactionCategory, TransactionSource
from usdfc_analytics.database.models import Transfer
from usdfc_analytics.engine import accounts, stats
from usdfc_analytics.engine.context import EventContext, LedgerEntry
from usdfc_analytics.ingestion.events import TransferParams


def handle_transfer(ctx: EventContext, params: TransferParams) -> LedgerEntry:
    event = ctx.event
    settings = ctx.settings
    value = event.value
    classification = classify(
        event.from_address,
        event.to_address,
        value,
        event.source_contract or None,
        address_book=settings.address_book,
        thresholds=settings.thresholds,
    )

    sender, _ = accounts.ensure_account(ctx.uow, event.from_address, ctx.block_number, ctx.timestamp)
    receiver, _ = accounts.ensure_account(ctx.uow, event.to_address, ctx.block_number, ctx.timestamp)

    # Risk looks at history before this event is counted
    tier = amount_tier(value, settings.thresholds)
    risk_score = Decimal(0)
    if settings.features.risk_scoring:
        risk = transfer_risk_score(
            value,
            sender.total_transaction_count if sender else None,
            receiver.total_transaction_count if receiver else None,
            ctx.timestamp,
            settings.thresholds,
        )
        risk_score = risk["score"]
        if risk["flags"]:
            ctx.log.debug("transfer_risk_flags", flags=risk["flags"], score=str(risk_score))

    holder_delta = accounts.apply_balance_transfer(sender, receiver, value)
    for account, is_sender in ((sender, True), (receiver, False)):
        if account is None:
            continue
        accounts.apply_event(
            account,
            classification.category,
            classification.ecosystem,
            value,
            is_sender,
            ctx.timestamp,
            ctx.block_number,
            settings.features,
        )
        if settings.features.risk_scoring:
            account.risk_score = risk_score
        ctx.uow.put(account)

    ctx.uow.put(
        Transfer(
            id=event.event_id,
            tx_hash=event.tx_hash,
            log_index=event.log_index,
            block_number=event.block_number,
            timestamp=event.block_timestamp,
            from_address=event.from_address,
            to_address=event.to_address,
            value=value,
            transfer_type=classification.transfer_type,
            ecosystem=classification.ecosystem,
            category=classification.category,
            amount_tier=tier,
            risk_score=risk_score,
        )
    )

    deltas: dict[str, int] = {
        "lifetime_transfer_count": 1,
        "total_volume": value,
        "holder_count": holder_delta,
    }
    if classification.category == TransactionCategory.MINT:
        deltas.update(lifetime_mint_count=1, total_supply=value)
        stats.count_daily(ctx.uow, ctx.timestamp, "mint_count")
    elif classification.category == TransactionCategory.BURN:
        deltas.update(lifetime_burn_count=1, total_supply=-value)
        stats.count_daily(ctx.uow, ctx.timestamp, "burn_count")
    stats.apply_delta(ctx.uow, stats.protocol_stats(ctx.uow), deltas)
    stats.record_transfer_flow(ctx.uow, classification.ecosystem, value, ctx.timestamp)

    return LedgerEntry(
        from_address=event.from_address,
        to_address=event.to_address,
        value=value,
        classification=classification,
        source=TransactionSource.TOKEN_TRANSFER,
        risk_score=risk_score,
        composability_score=accounts.composability_of(sender, receiver),
    )
