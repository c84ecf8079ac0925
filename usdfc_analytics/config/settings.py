"""
Application settings: address book, numeric thresholds, feature flags.

Responsibilities:
- Hold the address -> role mapping for protocol, DEX, bridge and DeFi contracts.
- Hold the amount-tier bounds, risk weights, institutional cutoff and off-hours window.
- Hold feature flags for the optional scoring subsystems.
- Load overrides from environment variables and an optional JSON address book.

Everything here is static input to the engine; swapping it never requires
touching classification or scoring code.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any

from usdfc_analytics.config.env import (
    get_address_book_path,
    get_database_url,
    get_feature_flag,
)
from usdfc_analytics.core.enums import AmountTier, ProtocolRole
from usdfc_analytics.core.exceptions import ConfigurationError
from usdfc_analytics.usdfc_logging import get_logger

logger = get_logger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
TOKEN_DECIMALS = 18
ONE_TOKEN = 10**TOKEN_DECIMALS

# USDFC mainnet deployment
USDFC_TOKEN = "0x80b98d3aa09ffff255c3ba4a241111ff1262f045"
TROVE_MANAGER = "0x5ab87c2398454125dd424425e39c8909bbe16022"
STABILITY_POOL = "0x791ad78bbc58324089d3e0a8689e7d045b9592b5"
PROTOCOL_STAKING = "0xc8707b3d426e7d7a0706c48dcd1a4b83bc220db3"
BORROWER_OPERATIONS = "0x4f122d7fce7971e38801af5d96fcd4ed83efd654"
PRICE_FEED = "0x80e651c9739c1ed15a267c11b85361780164a368"

# SushiSwap V3 on Filecoin
SUSHI_ROUTER = "0x804b526e5bf4349819fe2db65349d0825870f8ee"
SUSHI_ROUTER_V2 = "0xd5607d184b1d6ecba94a07c217497fe9346010d9"
SUSHI_V3_FACTORY = "0xc35dadb65012ec5796536bd9864ed8773abc74c4"
USDFC_WFIL_POOL = "0x4e07447bd38e60b94176764133788be1a0736b30"
USDFC_AXLUSDC_POOL = "0x21ca72fe39095db9642ca9cc694fa056f906037f"

WFIL_TOKEN = "0x60e1773636cf5e4a227d9ac24f20feca034ee25a"
AXLUSDC_TOKEN = "0xeb466342c4d449bc9f53a865d5cb90586f405215"


def _lower(address: str) -> str:
    return (address or "").strip().lower()


# -----------------------------------------------------------------------------
# Address book
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class PoolConfig:
    """A concentrated-liquidity pool: its two tokens (sorted as on-chain) and fee tier."""

    token0: str
    token1: str
    fee_tier: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "token0", _lower(self.token0))
        object.__setattr__(self, "token1", _lower(self.token1))


@dataclass(frozen=True)
class AddressBook:
    """
    Known contract addresses by role. All addresses are stored lower-cased.

    protocol: address -> ProtocolRole
    dex / bridge / defi: address sets for ecosystem detection
    pools: DEX pool address -> PoolConfig
    token_prices_usd / token_symbols: per-token reference data for USD estimates
    """

    protocol: dict[str, ProtocolRole] = field(default_factory=dict)
    dex: frozenset[str] = frozenset()
    bridge: frozenset[str] = frozenset()
    defi: frozenset[str] = frozenset()
    stablecoin: str = USDFC_TOKEN
    stablecoin_symbol: str = "USDFC"
    pools: dict[str, PoolConfig] = field(default_factory=dict)
    token_prices_usd: dict[str, Decimal] = field(default_factory=dict)
    token_symbols: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "protocol", {_lower(a): ProtocolRole(r) for a, r in self.protocol.items()})
        object.__setattr__(self, "dex", frozenset(_lower(a) for a in self.dex))
        object.__setattr__(self, "bridge", frozenset(_lower(a) for a in self.bridge))
        object.__setattr__(self, "defi", frozenset(_lower(a) for a in self.defi))
        object.__setattr__(self, "stablecoin", _lower(self.stablecoin))
        object.__setattr__(self, "pools", {_lower(a): p for a, p in self.pools.items()})
        object.__setattr__(
            self, "token_prices_usd", {_lower(a): Decimal(str(p)) for a, p in self.token_prices_usd.items()}
        )
        object.__setattr__(self, "token_symbols", {_lower(a): s for a, s in self.token_symbols.items()})

    def role_of(self, address: str | None) -> ProtocolRole | None:
        return self.protocol.get(_lower(address or ""))

    def is_dex(self, address: str | None) -> bool:
        return _lower(address or "") in self.dex

    def is_bridge(self, address: str | None) -> bool:
        return _lower(address or "") in self.bridge

    def is_defi(self, address: str | None) -> bool:
        return _lower(address or "") in self.defi

    def pool(self, address: str) -> PoolConfig | None:
        return self.pools.get(_lower(address))

    def token_price(self, token: str) -> Decimal:
        """USD reference price for a token. Raises ConfigurationError if the token is unpriced."""
        try:
            return self.token_prices_usd[_lower(token)]
        except KeyError:
            raise ConfigurationError(f"no USD reference price configured for token {token}") from None

    def symbol(self, token: str) -> str:
        return self.token_symbols.get(_lower(token), "UNKNOWN")


def default_address_book() -> AddressBook:
    """USDFC mainnet contracts and the SushiSwap pools that list USDFC. No bridge contracts by default."""
    return AddressBook(
        protocol={
            TROVE_MANAGER: ProtocolRole.TROVE_MANAGER,
            STABILITY_POOL: ProtocolRole.STABILITY_POOL,
            PROTOCOL_STAKING: ProtocolRole.STAKING,
            BORROWER_OPERATIONS: ProtocolRole.BORROWER_OPERATIONS,
            PRICE_FEED: ProtocolRole.PRICE_FEED,
            USDFC_TOKEN: ProtocolRole.TOKEN,
        },
        dex=frozenset(
            {SUSHI_ROUTER, SUSHI_ROUTER_V2, SUSHI_V3_FACTORY, USDFC_WFIL_POOL, USDFC_AXLUSDC_POOL}
        ),
        bridge=frozenset(),
        defi=frozenset(),
        stablecoin=USDFC_TOKEN,
        pools={
            # token0 < token1 by address, as the pool contracts sort them
            USDFC_WFIL_POOL: PoolConfig(token0=WFIL_TOKEN, token1=USDFC_TOKEN, fee_tier=500),
            USDFC_AXLUSDC_POOL: PoolConfig(token0=USDFC_TOKEN, token1=AXLUSDC_TOKEN, fee_tier=100),
        },
        token_prices_usd={
            USDFC_TOKEN: Decimal("0.99"),
            WFIL_TOKEN: Decimal("1.31"),
            AXLUSDC_TOKEN: Decimal("1.00"),
        },
        token_symbols={USDFC_TOKEN: "USDFC", WFIL_TOKEN: "WFIL", AXLUSDC_TOKEN: "axlUSDC"},
    )


def _parse_role(raw: str, address: str) -> ProtocolRole:
    try:
        return ProtocolRole(str(raw).strip().upper())
    except ValueError:
        raise ConfigurationError(f"unknown protocol role {raw!r} for address {address}") from None


def address_book_from_dict(data: dict[str, Any]) -> AddressBook:
    """
    Build an AddressBook from a JSON-style mapping.

    Sections: protocol {address: role}, dex/bridge/defi [addresses], stablecoin,
    pools {address: {token0, token1, fee_tier}}, token_prices_usd, token_symbols.
    Missing sections are empty; a missing stablecoin uses the USDFC mainnet token.
    """
    protocol = {addr: _parse_role(role, addr) for addr, role in (data.get("protocol") or {}).items()}
    pools = {}
    for addr, raw in (data.get("pools") or {}).items():
        try:
            pools[addr] = PoolConfig(
                token0=raw["token0"], token1=raw["token1"], fee_tier=int(raw.get("fee_tier", 0))
            )
        except KeyError as e:
            raise ConfigurationError(f"pool {addr} is missing {e.args[0]}") from None
    return AddressBook(
        protocol=protocol,
        dex=frozenset(data.get("dex") or ()),
        bridge=frozenset(data.get("bridge") or ()),
        defi=frozenset(data.get("defi") or ()),
        stablecoin=data.get("stablecoin") or USDFC_TOKEN,
        stablecoin_symbol=data.get("stablecoin_symbol") or "USDFC",
        pools=pools,
        token_prices_usd=data.get("token_prices_usd") or {},
        token_symbols=data.get("token_symbols") or {},
    )


def load_address_book(path: Path) -> AddressBook:
    """Read a JSON address book file. Raises ConfigurationError on unknown roles or bad pools."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    book = address_book_from_dict(data)
    logger.info(
        "address_book_loaded",
        path=str(path),
        protocol=len(book.protocol),
        dex=len(book.dex),
        bridge=len(book.bridge),
        defi=len(book.defi),
    )
    return book


# -----------------------------------------------------------------------------
# Thresholds and feature flags
# -----------------------------------------------------------------------------


def _default_tier_bounds() -> tuple[tuple[AmountTier, int], ...]:
    # Exclusive upper bound per tier; anything at or above the last bound is INSTITUTIONAL
    return (
        (AmountTier.DUST, ONE_TOKEN // 10),
        (AmountTier.MICRO, ONE_TOKEN),
        (AmountTier.SMALL, 100 * ONE_TOKEN),
        (AmountTier.MEDIUM, 1_000 * ONE_TOKEN),
        (AmountTier.LARGE, 10_000 * ONE_TOKEN),
        (AmountTier.WHALE, 100_000 * ONE_TOKEN),
    )


def _default_risk_weights() -> dict[AmountTier, int]:
    return {
        AmountTier.DUST: 0,
        AmountTier.MICRO: 2,
        AmountTier.SMALL: 5,
        AmountTier.MEDIUM: 15,
        AmountTier.LARGE: 25,
        AmountTier.WHALE: 40,
        AmountTier.INSTITUTIONAL: 60,
    }


@dataclass(frozen=True)
class Thresholds:
    """Numeric cutoffs used by classification and risk scoring. Amounts are base units."""

    tier_bounds: tuple[tuple[AmountTier, int], ...] = field(default_factory=_default_tier_bounds)
    risk_weights: dict[AmountTier, int] = field(default_factory=_default_risk_weights)
    institutional_threshold: int = 1_000_000 * ONE_TOKEN
    new_account_risk: int = 10
    new_account_tx_count: int = 5
    off_hours_start: int = 22
    off_hours_end: int = 6
    off_hours_multiplier: Decimal = Decimal("1.2")
    significant_price_move_percent: Decimal = Decimal("5")

    def risk_weight(self, tier: AmountTier) -> int:
        """Risk weight for an amount tier. Raises ConfigurationError if the table has no entry."""
        try:
            return self.risk_weights[tier]
        except KeyError:
            logger.error("risk_weight_missing", tier=tier.value)
            raise ConfigurationError(f"no risk weight configured for amount tier {tier.value}") from None


@dataclass(frozen=True)
class FeatureFlags:
    """Optional scoring subsystems. Disabled ones leave their fields at zero."""

    risk_scoring: bool = True
    composability_tracking: bool = True
    liquidation_prediction: bool = True
    ecosystem_tracking: bool = True
    yield_tracking: bool = True


@dataclass(frozen=True)
class Settings:
    address_book: AddressBook = field(default_factory=default_address_book)
    thresholds: Thresholds = field(default_factory=Thresholds)
    features: FeatureFlags = field(default_factory=FeatureFlags)
    database_url: str = "sqlite:///usdfc_analytics.db"


_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Return the current application settings, loading them from env on first call.

    Address book: USDFC_ADDRESS_BOOK JSON file when set, else the built-in mainnet book.
    Feature flags: USDFC_FEATURE_RISK_SCORING, _COMPOSABILITY_TRACKING,
    _LIQUIDATION_PREDICTION, _ECOSYSTEM_TRACKING, _YIELD_TRACKING (all default on).
    """
    global _settings
    if _settings is None:
        path = get_address_book_path()
        book = load_address_book(path) if path else default_address_book()
        _settings = Settings(
            address_book=book,
            thresholds=Thresholds(),
            features=FeatureFlags(
                risk_scoring=get_feature_flag("risk_scoring"),
                composability_tracking=get_feature_flag("composability_tracking"),
                liquidation_prediction=get_feature_flag("liquidation_prediction"),
                ecosystem_tracking=get_feature_flag("ecosystem_tracking"),
                yield_tracking=get_feature_flag("yield_tracking"),
            ),
            database_url=get_database_url(),
        )
    return _settings


def reset_settings_for_test() -> None:
    """Drop cached settings so the next get_settings() re-reads the environment."""
    global _settings
    _settings = None
