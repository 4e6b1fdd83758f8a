"""Data models for the sync engine."""

from .booking import (
    SYNCABLE_STATUSES,
    WITHDRAWN_STATUSES,
    Address,
    Booking,
    BookingStatus,
    Participant,
)
from .results import (
    ActionLogEntry,
    BookingSyncDetail,
    BulkSyncResult,
    CalendarSummary,
    ConflictRecord,
    ConflictReport,
    ConflictType,
    HealthDetails,
    HealthReport,
    OrchestrationResult,
    SyncAction,
    SyncActionType,
    SyncResult,
    SyncStatistics,
    TargetOutcome,
)

__all__ = [
    "SYNCABLE_STATUSES",
    "WITHDRAWN_STATUSES",
    "ActionLogEntry",
    "Address",
    "Booking",
    "BookingStatus",
    "BookingSyncDetail",
    "BulkSyncResult",
    "CalendarSummary",
    "ConflictRecord",
    "ConflictReport",
    "ConflictType",
    "HealthDetails",
    "HealthReport",
    "OrchestrationResult",
    "Participant",
    "SyncAction",
    "SyncActionType",
    "SyncResult",
    "SyncStatistics",
    "TargetOutcome",
]
