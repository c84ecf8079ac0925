"""
Aggregation engine: per-event handlers over a unit of work, and the
processor that validates, deduplicates and dispatches events to them.
"""

from usdfc_analytics.engine.processor import EventProcessor, ProcessResult

__all__ = ["EventProcessor", "ProcessResult"]
