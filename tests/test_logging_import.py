"""
Test that usdfc_logging can be imported without circular import and logger works.
"""

from __future__ import annotations

from structlog.testing import capture_logs


def test_logging_import():
    """Import get_logger from usdfc_logging and use the logger."""
    from usdfc_analytics.usdfc_logging import get_logger

    logger = get_logger("test")
    assert logger is not None
    assert hasattr(logger, "info")
    assert hasattr(logger, "debug")
    assert hasattr(logger, "warning")
    assert hasattr(logger, "error")
    # Smoke test: call info (should not raise)
    logger.info("test_message", key="value")


def test_bind_event_logger_carries_ledger_key():
    from usdfc_analytics.usdfc_logging import bind_event

    with capture_logs() as logs:
        log = bind_event("0xabc", 3)
        log.warning("bound_message", extra="x")

    assert len(logs) == 1
    entry = logs[0]
    assert entry["event"] == "bound_message"
    assert entry["log_level"] == "warning"
    assert entry["tx_hash"] == "0xabc"
    assert entry["log_index"] == 3
    assert entry["logger"] == "usdfc_analytics.engine"
    assert entry["extra"] == "x"
