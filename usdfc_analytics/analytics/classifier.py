"""
Transaction classification: (from, to, value, source contract) -> category, ecosystem, transfer type.

Rule chain, first match wins. Order of checks matters:
zero address (mint/burn) -> protocol contracts -> DEX -> bridge -> DeFi
integrations -> institutional-size value -> peer-to-peer default.

Known addresses come from the AddressBook; nothing here hard-codes an address
other than the zero address.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from usdfc_analytics.config.settings import ZERO_ADDRESS, AddressBook, Thresholds
from usdfc_analytics.core.enums import (
    EcosystemType,
    ProtocolRole,
    TransactionCategory,
    TransferType,
)


@dataclass(frozen=True)
class Classification:
    """Result of classifying one value movement."""

    category: TransactionCategory
    ecosystem: EcosystemType
    transfer_type: TransferType | None = None
    source_role: ProtocolRole | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "ecosystem": self.ecosystem.value,
            "transfer_type": self.transfer_type.value if self.transfer_type else None,
            "source_role": self.source_role.value if self.source_role else None,
        }


def _protocol_classification(role: ProtocolRole, outgoing: bool) -> Classification:
    """Sub-classify a transfer touching a protocol contract. outgoing=True means funds leave the contract."""
    if role == ProtocolRole.TROVE_MANAGER:
        return Classification(
            TransactionCategory.LIQUIDATION, EcosystemType.PROTOCOL_NATIVE, TransferType.LIQUIDATION_REWARD
        )
    if role == ProtocolRole.STABILITY_POOL:
        transfer_type = TransferType.STABILITY_WITHDRAWAL if outgoing else TransferType.STABILITY_DEPOSIT
        return Classification(TransactionCategory.STABILITY_OPERATION, EcosystemType.PROTOCOL_NATIVE, transfer_type)
    if role == ProtocolRole.STAKING:
        return Classification(
            TransactionCategory.STAKING_OPERATION, EcosystemType.PROTOCOL_NATIVE, TransferType.STAKING_OPERATION
        )
    return Classification(TransactionCategory.PROTOCOL_INTEGRATION, EcosystemType.PROTOCOL_NATIVE, TransferType.NORMAL)


def classify(
    from_address: str,
    to_address: str,
    value: int,
    source_contract: str | None = None,
    *,
    address_book: AddressBook,
    thresholds: Thresholds,
) -> Classification:
    """
    Classify a value movement. Deterministic and total: the default is P2P / NORMAL.

    Direction matters for stability pool, DEX and bridge (funds from the
    contract vs funds to it). source_contract only tags the result with the
    emitting contract's role; it never changes which rule matches.
    """
    sender = (from_address or "").lower()
    receiver = (to_address or "").lower()
    source_role = address_book.role_of(source_contract) if source_contract else None

    result = _classify(sender, receiver, value, address_book, thresholds)
    if source_role is None:
        return result
    return Classification(result.category, result.ecosystem, result.transfer_type, source_role)


def _classify(
    sender: str,
    receiver: str,
    value: int,
    book: AddressBook,
    thresholds: Thresholds,
) -> Classification:
    if sender == ZERO_ADDRESS:
        return Classification(TransactionCategory.MINT, EcosystemType.PROTOCOL_NATIVE, TransferType.MINT_TO_BORROWER)
    if receiver == ZERO_ADDRESS:
        return Classification(
            TransactionCategory.BURN, EcosystemType.PROTOCOL_NATIVE, TransferType.BURN_FROM_REPAYMENT
        )

    sender_role = book.role_of(sender)
    if sender_role is not None:
        return _protocol_classification(sender_role, outgoing=True)
    receiver_role = book.role_of(receiver)
    if receiver_role is not None:
        return _protocol_classification(receiver_role, outgoing=False)

    if book.is_dex(sender):
        return Classification(TransactionCategory.DEX_SWAP, EcosystemType.DEX_ECOSYSTEM, TransferType.DEX_SWAP_IN)
    if book.is_dex(receiver):
        return Classification(TransactionCategory.DEX_SWAP, EcosystemType.DEX_ECOSYSTEM, TransferType.DEX_SWAP_OUT)

    if book.is_bridge(sender):
        return Classification(
            TransactionCategory.BRIDGE_TRANSFER, EcosystemType.BRIDGE_ECOSYSTEM, TransferType.BRIDGE_WITHDRAWAL
        )
    if book.is_bridge(receiver):
        return Classification(
            TransactionCategory.BRIDGE_TRANSFER, EcosystemType.BRIDGE_ECOSYSTEM, TransferType.BRIDGE_DEPOSIT
        )

    if book.is_defi(sender) or book.is_defi(receiver):
        return Classification(
            TransactionCategory.PROTOCOL_INTEGRATION, EcosystemType.DEFI_ECOSYSTEM, TransferType.DEFI_INTEGRATION
        )

    if value > thresholds.institutional_threshold:
        return Classification(
            TransactionCategory.INSTITUTIONAL_OPERATION, EcosystemType.INSTITUTIONAL_ECOSYSTEM, TransferType.NORMAL
        )

    return Classification(TransactionCategory.P2P_TRANSFER, EcosystemType.P2P_ECOSYSTEM, TransferType.NORMAL)
