"""
Structured JSON logging for the event engine.

One JSON object per line on stdout: event_type, level, ISO timestamp, logger,
plus whatever context the caller binds. Per-event lines carry the ledger key
(tx_hash, log_index) via bind_event().

No usdfc_analytics imports here; every other module imports this one.
"""

from __future__ import annotations

import logging
import os
import sys

import structlog

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL_VALUE = getattr(logging, LOG_LEVEL, logging.INFO)

ENGINE_LOGGER = "usdfc_analytics.engine"


def configure_structlog() -> None:
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
            # logger.exception() in the stores and replay tool
            structlog.processors.format_exc_info,
            structlog.processors.EventRenamer("event_type"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(LOG_LEVEL_VALUE),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Return a structured logger tagged with the module name.

        logger = get_logger(__name__)
        logger.info("trove_liquidated", owner=addr, collateral_ratio="104.2")
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_event(tx_hash: str, log_index: int) -> structlog.BoundLogger:
    """Return the engine logger with the event's ledger key bound."""
    return get_logger(ENGINE_LOGGER).bind(tx_hash=tx_hash, log_index=log_index)
