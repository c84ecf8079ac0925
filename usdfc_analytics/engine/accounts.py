"""
Account aggregation: lazy creation, balances, activity counters and derived scores.

apply_event must run exactly once per side (sender, receiver) per event;
calling it twice for the same event on the same account double-counts.
The zero address never becomes an account.
"""

from __future__ import annotations

from decimal import Decimal

from usdfc_analytics.analytics import scoring
from usdfc_analytics.analytics.classifier import Classification
from usdfc_analytics.analytics.user_classifier import classify_user_type
from usdfc_analytics.config.settings import ZERO_ADDRESS, FeatureFlags
from usdfc_analytics.core.enums import EcosystemType, TransactionCategory
from usdfc_analytics.database.models import Account
from usdfc_analytics.database.store import UnitOfWork
from usdfc_analytics.engine import stats
from usdfc_analytics.engine.context import EventContext
from usdfc_analytics.usdfc_logging import get_logger

logger = get_logger(__name__)

# (counter field, volume field) per ecosystem; institutional flows are peer-to-peer
ECOSYSTEM_PARTITION: dict[EcosystemType, tuple[str, str]] = {
    EcosystemType.PROTOCOL_NATIVE: ("protocol_operation_count", "protocol_volume"),
    EcosystemType.DEX_ECOSYSTEM: ("dex_activity_count", "dex_volume"),
    EcosystemType.BRIDGE_ECOSYSTEM: ("bridge_activity_count", "bridge_volume"),
    EcosystemType.P2P_ECOSYSTEM: ("p2p_transfer_count", "p2p_volume"),
    EcosystemType.INSTITUTIONAL_ECOSYSTEM: ("p2p_transfer_count", "p2p_volume"),
    EcosystemType.DEFI_ECOSYSTEM: ("defi_integration_count", "defi_integration_volume"),
}


def ensure_account(uow: UnitOfWork, address: str, block_number: int, timestamp: int) -> tuple[Account | None, bool]:
    """
    Load or lazily create the account for an address.

    Returns (account, created). The zero address yields (None, False).
    New accounts are counted as new ecosystem users for the day.
    """
    address = (address or "").lower()
    if not address or address == ZERO_ADDRESS:
        return None, False
    account = uow.get(Account, address)
    if account is not None:
        return account, False
    account = Account(
        address=address,
        first_seen_block=block_number,
        first_seen_timestamp=timestamp,
        last_active_block=block_number,
        last_active_timestamp=timestamp,
    )
    uow.put(account)
    stats.record_new_user(uow, timestamp)
    return account, True


def apply_event(
    account: Account,
    category: TransactionCategory,
    ecosystem: EcosystemType,
    value: int,
    is_sender: bool | None,
    timestamp: int,
    block_number: int,
    features: FeatureFlags,
) -> Account:
    """
    Apply one event to one side of it.

    is_sender True adds to volume out, False to volume in, None marks a
    participant with no token flow (position changes, satellite events):
    counted, and credited to its ecosystem volume, but not to in/out volume.
    """
    account.total_transaction_count += 1
    if is_sender is True:
        account.total_volume_out += value
    elif is_sender is False:
        account.total_volume_in += value
    account.net_volume = account.total_volume_in - account.total_volume_out

    counter, volume = ECOSYSTEM_PARTITION[ecosystem]
    setattr(account, counter, getattr(account, counter) + 1)
    setattr(account, volume, getattr(account, volume) + value)

    if block_number >= account.last_active_block:
        account.last_active_block = block_number
        account.last_active_timestamp = max(account.last_active_timestamp, timestamp)
    account.days_since_first_seen = scoring.days_between(account.first_seen_timestamp, timestamp)

    account.user_type = classify_user_type(
        {
            "total_transaction_count": account.total_transaction_count,
            "dex_activity_count": account.dex_activity_count,
            "bridge_activity_count": account.bridge_activity_count,
            "defi_integration_count": account.defi_integration_count,
            "protocol_operation_count": account.protocol_operation_count,
        },
        current=account.user_type,
    )
    if features.composability_tracking:
        account.composability_score = scoring.composability_score(account.ecosystem_counts())
        account.influence_score = scoring.influence_score(
            account.total_volume_in + account.total_volume_out, account.total_transaction_count
        )
    logger.debug(
        "account_activity",
        address=account.address,
        category=category.value,
        ecosystem=ecosystem.value,
        count=account.total_transaction_count,
    )
    return account


def apply_balance_transfer(sender: Account | None, receiver: Account | None, value: int) -> int:
    """
    Move value between balances (None is the zero address, i.e. mint or burn).

    Returns the change in holder count: +1 per balance that becomes positive,
    -1 per balance that drops to zero or below.
    """
    holder_delta = 0
    if sender is not None:
        before = sender.balance
        sender.balance -= value
        if before > 0 >= sender.balance:
            holder_delta -= 1
        if sender.balance < 0:
            logger.warning("account_negative_balance", address=sender.address, balance=sender.balance)
    if receiver is not None:
        before = receiver.balance
        receiver.balance += value
        if before <= 0 < receiver.balance:
            holder_delta += 1
    return holder_delta


def credit_participant(
    ctx: EventContext,
    address: str,
    classification: Classification,
    value: int = 0,
) -> Account | None:
    """Credit a single non-transfer participant (borrower, depositor, trader) once."""
    account, _ = ensure_account(ctx.uow, address, ctx.block_number, ctx.timestamp)
    if account is None:
        return None
    apply_event(
        account,
        classification.category,
        classification.ecosystem,
        value,
        None,
        ctx.timestamp,
        ctx.block_number,
        ctx.settings.features,
    )
    ctx.uow.put(account)
    return account


def composability_of(*accounts: Account | None) -> Decimal:
    """Highest composability among the parties, for the ledger entry."""
    scores = [a.composability_score for a in accounts if a is not None]
    return max(scores) if scores else Decimal(0)
