"""
Pytest fixtures for USDFC analytics tests.

In-memory store and processor for engine tests; a temporary SQLite file for
the SQLAlchemy store. Settings use a test address book with known DEX,
bridge and DeFi addresses on top of the mainnet protocol contracts.
"""

from __future__ import annotations

import dataclasses

import pytest

from event_factory import BRIDGE_GATEWAY, DEFI_VAULT, DEX_ROUTER


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep a developer's .env or shell config out of the tests."""
    for name in (
        "USDFC_DB_URL",
        "DATABASE_URL",
        "USDFC_DB_PATH",
        "USDFC_ADDRESS_BOOK",
        "USDFC_FEATURE_RISK_SCORING",
        "USDFC_FEATURE_COMPOSABILITY_TRACKING",
        "USDFC_FEATURE_LIQUIDATION_PREDICTION",
        "USDFC_FEATURE_ECOSYSTEM_TRACKING",
        "USDFC_FEATURE_YIELD_TRACKING",
    ):
        monkeypatch.delenv(name, raising=False)

    from usdfc_analytics.config.settings import reset_settings_for_test

    reset_settings_for_test()
    yield
    reset_settings_for_test()


@pytest.fixture
def address_book():
    from usdfc_analytics.config.settings import default_address_book

    book = default_address_book()
    return dataclasses.replace(
        book,
        dex=book.dex | {DEX_ROUTER},
        bridge=frozenset({BRIDGE_GATEWAY}),
        defi=frozenset({DEFI_VAULT}),
    )


@pytest.fixture
def settings(address_book):
    from usdfc_analytics.config.settings import Settings

    return Settings(address_book=address_book)


@pytest.fixture
def store():
    from usdfc_analytics.database.store import InMemoryStore

    return InMemoryStore()


@pytest.fixture
def processor(store, settings):
    from usdfc_analytics.engine.processor import EventProcessor

    return EventProcessor(store, settings)


@pytest.fixture
def sqlite_url(tmp_path):
    return f"sqlite:///{tmp_path / 'usdfc_test.db'}"


@pytest.fixture
def sql_store(sqlite_url):
    """SqlEntityStore on a temporary SQLite file, tables created, disposed after the test."""
    from usdfc_analytics.database.sql_store import SqlEntityStore

    s = SqlEntityStore(sqlite_url)
    s.init_db()
    yield s
    s.dispose()
