"""
Pytest tests for transaction classification: rule order, direction, thresholds.
"""

from __future__ import annotations

import pytest

from event_factory import ALICE, BOB, BRIDGE_GATEWAY, DEFI_VAULT, DEX_ROUTER, tokens
from usdfc_analytics.analytics.classifier import classify
from usdfc_analytics.config.settings import (
    PROTOCOL_STAKING,
    STABILITY_POOL,
    TROVE_MANAGER,
    USDFC_TOKEN,
    ZERO_ADDRESS,
    Thresholds,
)
from usdfc_analytics.core.enums import EcosystemType, ProtocolRole, TransactionCategory, TransferType


@pytest.fixture
def run(address_book):
    thresholds = Thresholds()

    def _classify(frm, to, value=tokens(10), source=None):
        return classify(frm, to, value, source, address_book=address_book, thresholds=thresholds)

    return _classify


def test_mint_and_burn(run):
    minted = run(ZERO_ADDRESS, ALICE)
    assert minted.category == TransactionCategory.MINT
    assert minted.ecosystem == EcosystemType.PROTOCOL_NATIVE
    assert minted.transfer_type == TransferType.MINT_TO_BORROWER

    burned = run(ALICE, ZERO_ADDRESS)
    assert burned.category == TransactionCategory.BURN
    assert burned.transfer_type == TransferType.BURN_FROM_REPAYMENT


def test_stability_pool_is_directional(run):
    """Funds to the pool are a deposit, funds from it a withdrawal."""
    to_pool = run(ALICE, STABILITY_POOL)
    from_pool = run(STABILITY_POOL, ALICE)
    assert to_pool.category == from_pool.category == TransactionCategory.STABILITY_OPERATION
    assert to_pool.transfer_type == TransferType.STABILITY_DEPOSIT
    assert from_pool.transfer_type == TransferType.STABILITY_WITHDRAWAL


def test_trove_manager_and_staking(run):
    assert run(TROVE_MANAGER, ALICE).transfer_type == TransferType.LIQUIDATION_REWARD
    assert run(TROVE_MANAGER, ALICE).category == TransactionCategory.LIQUIDATION
    staking = run(ALICE, PROTOCOL_STAKING)
    assert staking.category == TransactionCategory.STAKING_OPERATION
    assert staking.transfer_type == TransferType.STAKING_OPERATION


def test_other_protocol_contract_is_integration(run):
    result = run(ALICE, USDFC_TOKEN)
    assert result.category == TransactionCategory.PROTOCOL_INTEGRATION
    assert result.ecosystem == EcosystemType.PROTOCOL_NATIVE


def test_dex_direction(run):
    assert run(DEX_ROUTER, ALICE).transfer_type == TransferType.DEX_SWAP_IN
    assert run(ALICE, DEX_ROUTER).transfer_type == TransferType.DEX_SWAP_OUT
    assert run(ALICE, DEX_ROUTER).ecosystem == EcosystemType.DEX_ECOSYSTEM


def test_bridge_direction(run):
    assert run(BRIDGE_GATEWAY, ALICE).transfer_type == TransferType.BRIDGE_WITHDRAWAL
    assert run(ALICE, BRIDGE_GATEWAY).transfer_type == TransferType.BRIDGE_DEPOSIT
    assert run(ALICE, BRIDGE_GATEWAY).category == TransactionCategory.BRIDGE_TRANSFER


def test_defi_integration(run):
    result = run(ALICE, DEFI_VAULT)
    assert result.ecosystem == EcosystemType.DEFI_ECOSYSTEM
    assert result.transfer_type == TransferType.DEFI_INTEGRATION


def test_institutional_threshold_is_strict(run):
    """Only values above one million tokens are institutional."""
    at = run(ALICE, BOB, tokens(1_000_000))
    above = run(ALICE, BOB, tokens(1_000_000) + 1)
    assert at.category == TransactionCategory.P2P_TRANSFER
    assert above.category == TransactionCategory.INSTITUTIONAL_OPERATION
    assert above.ecosystem == EcosystemType.INSTITUTIONAL_ECOSYSTEM


def test_p2p_default(run):
    result = run(ALICE, BOB)
    assert result.category == TransactionCategory.P2P_TRANSFER
    assert result.ecosystem == EcosystemType.P2P_ECOSYSTEM
    assert result.transfer_type == TransferType.NORMAL


def test_rule_order_mint_beats_dex(run):
    assert run(ZERO_ADDRESS, DEX_ROUTER).category == TransactionCategory.MINT
    # Protocol contracts are checked before DEX addresses
    assert run(STABILITY_POOL, DEX_ROUTER).category == TransactionCategory.STABILITY_OPERATION


def test_source_contract_only_tags_role(run):
    plain = run(ALICE, BOB)
    tagged = run(ALICE, BOB, source=STABILITY_POOL)
    assert tagged.category == plain.category
    assert tagged.transfer_type == plain.transfer_type
    assert tagged.source_role == ProtocolRole.STABILITY_POOL
    assert plain.source_role is None


def test_addresses_are_case_insensitive(run):
    assert run(ALICE.upper().replace("0X", "0x"), STABILITY_POOL.upper()).transfer_type == TransferType.STABILITY_DEPOSIT


def test_classification_to_dict(run):
    d = run(ALICE, BOB).to_dict()
    assert d == {
        "category": "P2P_TRANSFER",
        "ecosystem": "P2P_ECOSYSTEM",
        "transfer_type": "NORMAL",
        "source_role": None,
    }
