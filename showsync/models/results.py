"""Pydantic models returned by the sync engine.

Every caller-facing operation returns one of these, always carrying a
``success`` flag and a human-readable ``message``.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from showsync.errors import SyncErrorKind


class TargetOutcome(BaseModel):
    """Result of one provider call against one participant's calendar."""

    user_id: str
    operation: str  # "create" | "update" | "delete"
    success: bool
    external_id: Optional[str] = None
    error: Optional[str] = None


class SyncResult(BaseModel):
    """Outcome of reconciling or removing a single booking."""

    success: bool
    message: str
    external_id: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[SyncErrorKind] = None
    synced_at: Optional[datetime] = None
    actions: list[TargetOutcome] = []

    @classmethod
    def failure(
        cls,
        kind: SyncErrorKind,
        message: str,
        error: Optional[str] = None,
        actions: Optional[list[TargetOutcome]] = None,
    ) -> "SyncResult":
        return cls(
            success=False,
            message=message,
            error=error,
            error_kind=kind,
            actions=actions or [],
        )


class SyncActionType(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class SyncAction(BaseModel):
    """A planned operation for one booking, produced by the orchestrator."""

    type: SyncActionType
    booking_id: str


class ActionLogEntry(BaseModel):
    type: SyncActionType
    booking_id: str
    success: bool
    message: str
    error: Optional[str] = None


class OrchestrationResult(BaseModel):
    success: bool
    message: str
    actions: list[ActionLogEntry] = []


class BookingSyncDetail(BaseModel):
    booking_id: str
    success: bool
    message: str


class BulkSyncResult(BaseModel):
    """Outcome of ``sync_all_user_bookings``."""

    success: bool
    message: str
    total: int = 0
    synchronized: int = 0
    failed: int = 0
    details: list[BookingSyncDetail] = []


class ConflictType(str, Enum):
    EXACT_MATCH = "exact_match"
    OVERLAP = "overlap"


class ConflictRecord(BaseModel):
    booking_id: str
    conflict_with: str
    conflict_at: datetime
    conflict_type: ConflictType


class ConflictReport(BaseModel):
    has_conflicts: bool = False
    conflicts: list[ConflictRecord] = []


class SyncStatistics(BaseModel):
    total: int = 0
    synced: int = 0
    unsynced: int = 0
    sync_errors: int = 0
    last_sync_at: Optional[datetime] = None
    sync_percentage: int = 0


class CalendarSummary(BaseModel):
    calendar_id: str
    display_name: str
    time_zone: str


class HealthDetails(BaseModel):
    token_valid: bool = False
    calendar_access: bool = False
    recent_sync_activity: bool = False
    conflicts_count: int = 0
    sync_percentage: int = 0
    calendar: Optional[CalendarSummary] = None


class HealthReport(BaseModel):
    healthy: bool
    issues: list[str] = []
    recommendations: list[str] = []
    details: HealthDetails = Field(default_factory=HealthDetails)
