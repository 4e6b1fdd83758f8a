"""Failure taxonomy for synchronization results.

Per-item failures are *values* (``SyncErrorKind`` on a result), never
exceptions.  ``InfrastructureError`` is the single exception type allowed
to cross a component boundary; batch operations turn it into one fatal
result.
"""

from __future__ import annotations

from enum import Enum


class SyncErrorKind(str, Enum):
    INVALID_STATE = "invalid_state"    # booking status/schedule not syncable
    NO_TARGETS = "no_targets"          # no participant has a connected calendar
    NOT_SYNCED = "not_synced"          # remove with no external event id
    NOT_FOUND = "not_found"            # booking or remote event missing
    PROVIDER_ERROR = "provider_error"  # the calendar provider call failed


class InfrastructureError(Exception):
    """The booking or token store is unavailable."""
