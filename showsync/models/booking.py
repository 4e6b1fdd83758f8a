"""Pydantic models for bookings and their sync state."""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from showsync.dateutils import ensure_aware


class BookingStatus(str, Enum):
    PENDING = "pending"
    IN_NEGOTIATION = "in_negotiation"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


# Statuses whose bookings belong on the participants' calendars
SYNCABLE_STATUSES = frozenset({BookingStatus.ACCEPTED, BookingStatus.IN_NEGOTIATION})

# Statuses whose remote events must be removed
WITHDRAWN_STATUSES = frozenset({BookingStatus.CANCELLED, BookingStatus.REJECTED})


class Address(BaseModel):
    """Venue address used to build the event location."""

    street: str
    number: Optional[str] = None
    complement: Optional[str] = None
    neighborhood: str = ""
    city: str = ""
    state: str = ""
    postal_code: Optional[str] = None


class Participant(BaseModel):
    """One side of a booking (performing group or venue) and its owner account."""

    user_id: str
    name: str = ""
    email: Optional[str] = None
    address: Optional[Address] = None


class Booking(BaseModel):
    """An engagement between a performer and a venue.

    Content fields are owned by the booking subsystem.  The sync fields
    (``external_event_id``, ``synced``, ``last_sync_at``) are written only
    by the reconciler.
    """

    id: str
    status: BookingStatus
    scheduled_start: datetime
    duration_minutes: int = Field(gt=0)

    performer: Participant
    venue: Participant

    # Content shown in the external event
    title: Optional[str] = None
    event_description: Optional[str] = None
    final_value: Optional[Decimal] = None
    needs_sound: bool = False
    needs_lighting: bool = False
    required_instruments: Optional[str] = None
    requester_notes: Optional[str] = None

    # Sync state
    external_event_id: Optional[str] = None
    synced: bool = False
    last_sync_at: Optional[datetime] = None
    last_modified_at: datetime

    @field_validator("scheduled_start", "last_modified_at", "last_sync_at")
    @classmethod
    def _naive_is_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(value) if value is not None else None

    @model_validator(mode="after")
    def _synced_requires_event_id(self) -> "Booking":
        if self.synced and not self.external_event_id:
            raise ValueError("a synced booking must carry an external_event_id")
        return self

    @property
    def scheduled_end(self) -> datetime:
        return self.scheduled_start + timedelta(minutes=self.duration_minutes)

    @property
    def participant_user_ids(self) -> list[str]:
        return [self.performer.user_id, self.venue.user_id]

    def involves(self, user_id: str) -> bool:
        return user_id in self.participant_user_ids

    def is_syncable(self, now: datetime) -> bool:
        """Accepted or in negotiation, and still ahead of ``now``."""
        return self.status in SYNCABLE_STATUSES and self.scheduled_start > now

    def needs_update(self) -> bool:
        """Content changed after the last successful sync."""
        if self.last_sync_at is None:
            return True
        return self.last_modified_at > self.last_sync_at
