"""
Input boundary: event envelopes and per-event parameter models, validated with pydantic.
"""

from usdfc_analytics.ingestion.events import ChainEvent, parse_event, parse_params

__all__ = ["ChainEvent", "parse_event", "parse_params"]
