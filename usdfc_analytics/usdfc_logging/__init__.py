"""
Structured logging for USDFC Analytics.

JSON logs with timestamp, event_type, and event context (tx_hash, log_index, address).
Use get_logger() in all engine modules for aggregation-friendly output.
"""

from usdfc_analytics.usdfc_logging.logger import bind_event, get_logger

__all__ = ["bind_event", "get_logger"]
