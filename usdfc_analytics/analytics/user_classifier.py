"""
User type classification for accounts.

Runs after every activity update so the label follows behavior. Order of
checks matters: DEX share, bridge use, DeFi use, protocol share, raw volume.
When nothing matches the account keeps its current label.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from usdfc_analytics.core.enums import UserType

DEX_RATIO_THRESHOLD = Decimal("0.6")
PROTOCOL_RATIO_THRESHOLD = Decimal("0.8")
BRIDGE_ACTIVITY_THRESHOLD = 5
DEFI_ACTIVITY_THRESHOLD = 10
POWER_USER_ACTIVITY_THRESHOLD = 100


def classify_user_type(metrics: dict[str, Any], current: UserType = UserType.RETAIL_USER) -> UserType:
    """
    Classify an account from its activity counters.

    Expects metrics: total_transaction_count, dex_activity_count,
    bridge_activity_count, defi_integration_count, protocol_operation_count.
    Handles missing metrics by treating them as 0.
    """
    total = int(metrics.get("total_transaction_count") or 0)
    dex = int(metrics.get("dex_activity_count") or 0)
    bridge = int(metrics.get("bridge_activity_count") or 0)
    defi = int(metrics.get("defi_integration_count") or 0)
    protocol = int(metrics.get("protocol_operation_count") or 0)

    if total <= 0:
        return current

    if Decimal(dex) / total > DEX_RATIO_THRESHOLD:
        return UserType.DEX_TRADER
    if bridge > BRIDGE_ACTIVITY_THRESHOLD:
        return UserType.BRIDGE_USER
    if defi > DEFI_ACTIVITY_THRESHOLD:
        return UserType.DEFI_USER
    if Decimal(protocol) / total > PROTOCOL_RATIO_THRESHOLD:
        return UserType.PROTOCOL_NATIVE
    if total > POWER_USER_ACTIVITY_THRESHOLD:
        return UserType.POWER_USER

    return current
