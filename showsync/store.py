"""Booking repository used by the sync engine.

The engine only ever asks for bookings through a structured
``BookingFilter`` and only ever writes the sync fields, so any persistence
backend can sit behind ``BookingStore``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from showsync.dateutils import ensure_aware
from showsync.errors import InfrastructureError
from showsync.models.booking import Booking, BookingStatus

log = logging.getLogger("showsync.store")


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET = _Unset()


class BookingFilter(BaseModel):
    """Which bookings to load.  Unset fields do not constrain the query."""

    user_id: Optional[str] = None                  # performer or venue owner
    statuses: Optional[frozenset[BookingStatus]] = None
    start_from: Optional[datetime] = None          # inclusive
    start_to: Optional[datetime] = None            # inclusive
    has_external_event: Optional[bool] = None

    @field_validator("start_from", "start_to")
    @classmethod
    def _naive_is_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(value) if value is not None else None

    def matches(self, booking: Booking) -> bool:
        if self.user_id is not None and not booking.involves(self.user_id):
            return False
        if self.statuses is not None and booking.status not in self.statuses:
            return False
        if self.start_from is not None and booking.scheduled_start < self.start_from:
            return False
        if self.start_to is not None and booking.scheduled_start > self.start_to:
            return False
        if self.has_external_event is not None:
            if (booking.external_event_id is not None) != self.has_external_event:
                return False
        return True


class BookingStore(ABC):
    """Reads bookings and writes their sync state.

    Implementations raise ``InfrastructureError`` when the backend is
    unavailable and nothing else.
    """

    @abstractmethod
    async def get_booking(self, booking_id: str) -> Booking | None:
        ...

    @abstractmethod
    async def find_bookings(self, criteria: BookingFilter) -> list[Booking]:
        """Bookings matching ``criteria`` ordered by scheduled start."""

    @abstractmethod
    async def update_sync_state(
        self,
        booking_id: str,
        *,
        external_event_id: Optional[str],
        synced: bool,
        last_sync_at: datetime,
        expected_event_id: Optional[str] | _Unset = UNSET,
    ) -> bool:
        """Write the sync fields.

        When ``expected_event_id`` is given the write only happens if the
        stored ``external_event_id`` still equals it (compare-and-set).
        ``last_sync_at`` never moves backwards.  Returns False when the
        booking is missing or the comparison failed.
        """


class InMemoryBookingStore(BookingStore):
    """Dict-backed store.  Reads return copies, so callers hold snapshots."""

    def __init__(self, bookings: list[Booking] | None = None) -> None:
        self._bookings: dict[str, Booking] = {}
        self.available = True
        for booking in bookings or []:
            self.add(booking)

    def add(self, booking: Booking) -> None:
        self._bookings[booking.id] = booking.model_copy(deep=True)

    def _check_available(self) -> None:
        if not self.available:
            raise InfrastructureError("booking store unavailable")

    async def get_booking(self, booking_id: str) -> Booking | None:
        self._check_available()
        booking = self._bookings.get(booking_id)
        return booking.model_copy(deep=True) if booking else None

    async def find_bookings(self, criteria: BookingFilter) -> list[Booking]:
        self._check_available()
        found = [b for b in self._bookings.values() if criteria.matches(b)]
        found.sort(key=lambda b: b.scheduled_start)
        return [b.model_copy(deep=True) for b in found]

    async def update_sync_state(
        self,
        booking_id: str,
        *,
        external_event_id: Optional[str],
        synced: bool,
        last_sync_at: datetime,
        expected_event_id: Optional[str] | _Unset = UNSET,
    ) -> bool:
        self._check_available()
        booking = self._bookings.get(booking_id)
        if booking is None:
            return False
        if expected_event_id is not UNSET and booking.external_event_id != expected_event_id:
            log.info(
                "Sync state write for booking %s skipped: event id is %s, expected %s",
                booking_id, booking.external_event_id, expected_event_id,
            )
            return False

        last_sync_at = ensure_aware(last_sync_at)
        if booking.last_sync_at is not None and last_sync_at < booking.last_sync_at:
            last_sync_at = booking.last_sync_at

        self._bookings[booking_id] = booking.model_copy(
            update={
                "external_event_id": external_event_id,
                "synced": synced,
                "last_sync_at": last_sync_at,
            }
        )
        return True
