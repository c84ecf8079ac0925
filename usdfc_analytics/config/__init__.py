"""
Configuration management for USDFC Analytics.

Loads settings from environment variables, a .env file and an optional JSON
address book. Exposes a single source of truth for addresses, thresholds and flags.
"""

from usdfc_analytics.config.settings import (  # noqa: F401
    AddressBook,
    FeatureFlags,
    PoolConfig,
    Settings,
    Thresholds,
    get_settings,
)

__all__ = ["AddressBook", "FeatureFlags", "PoolConfig", "Settings", "Thresholds", "get_settings"]
