"""
Environment variable loading for USDFC Analytics.

- USDFC_DB_URL / DATABASE_URL: SQLAlchemy URL for the entity store
- USDFC_DB_PATH: SQLite file used when no URL is set (default: usdfc_analytics.db)
- USDFC_ADDRESS_BOOK: optional JSON file overriding the built-in address book
- USDFC_FEATURE_<NAME>: feature flags (1/true/yes or 0/false/no)
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is usdfc_analytics/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_SQLITE_PATH = "usdfc_analytics.db"

_TRUTHY = ("1", "true", "yes", "on")
_FALSY = ("0", "false", "no", "off")


def load_usdfc_env() -> None:
    """Load .env from project root. Safe to call multiple times; existing env wins."""
    load_dotenv(_ENV_PATH, override=False)


def get_database_url() -> str:
    """Return USDFC_DB_URL or DATABASE_URL if set; else SQLite from USDFC_DB_PATH or default."""
    load_usdfc_env()
    url = (os.getenv("USDFC_DB_URL") or os.getenv("DATABASE_URL") or "").strip()
    if url:
        return url
    path = (os.getenv("USDFC_DB_PATH") or "").strip() or DEFAULT_SQLITE_PATH
    return f"sqlite:///{path}"


def get_address_book_path() -> Path | None:
    """Return USDFC_ADDRESS_BOOK as a Path, or None to use the built-in address book."""
    load_usdfc_env()
    raw = (os.getenv("USDFC_ADDRESS_BOOK") or "").strip()
    return Path(raw) if raw else None


def get_feature_flag(name: str, default: bool = True) -> bool:
    """
    Read USDFC_FEATURE_<NAME> as a boolean.

    Unrecognised values fall back to the default rather than guessing.
    """
    load_usdfc_env()
    raw = (os.getenv(f"USDFC_FEATURE_{name.upper()}") or "").strip().lower()
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    return default
