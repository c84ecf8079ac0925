"""
Application-level exceptions.

- InvalidEventError: malformed or negative input, rejected before any state mutation.
  The processor skips the event and reports a diagnostic.
- MissingRecordError: an aggregation expected an existing record (e.g. gains
  claimed by an unknown staker). Logged as a warning; the ledger entry is still written.
- ConfigurationError: a key expected in a static configuration map is absent.
  Raised where the map is consulted and never swallowed by the engine.
"""

from __future__ import annotations


class UsdfcAnalyticsError(Exception):
    """Base class for all engine errors."""


class InvalidEventError(UsdfcAnalyticsError, ValueError):
    """Event payload failed validation."""

    def __init__(self, message: str, event_id: str | None = None) -> None:
        super().__init__(message)
        self.event_id = event_id


class MissingRecordError(UsdfcAnalyticsError, LookupError):
    """A record that an aggregation depends on does not exist."""

    def __init__(self, kind: str, key: str) -> None:
        super().__init__(f"{kind} record not found: {key}")
        self.kind = kind
        self.key = key


class ConfigurationError(UsdfcAnalyticsError, KeyError):
    """Static configuration is missing an expected entry."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the message readable
        return str(self.args[0]) if self.args else ""
