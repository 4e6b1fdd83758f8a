"""Time-conflict detection between bookings and external calendar events.

Detection degrades silently: when the user's calendar is not connected or
the provider cannot list events, the report is simply empty.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from showsync.calendar_providers.base import ClientFactory, EventWindow, ExternalEvent
from showsync.config import Settings, settings as default_settings
from showsync.credentials import CredentialProvider, utcnow
from showsync.dateutils import ensure_aware, window_from_now
from showsync.models.booking import SYNCABLE_STATUSES, Booking
from showsync.models.results import ConflictRecord, ConflictReport, ConflictType
from showsync.store import BookingFilter, BookingStore

log = logging.getLogger("showsync.conflicts")

UNTITLED_EVENT = "Untitled event"


def overlaps(start1: datetime, end1: datetime, start2: datetime, end2: datetime) -> bool:
    """Half-open interval intersection; touching endpoints do not overlap."""
    return start1 < end2 and start2 < end1


def classify(booking: Booking, event: ExternalEvent) -> ConflictType | None:
    """Conflict type for one pair, or None when they do not collide."""
    if event.id is not None and event.id == booking.external_event_id:
        return None

    b_start = ensure_aware(booking.scheduled_start)
    b_end = ensure_aware(booking.scheduled_end)
    e_start = ensure_aware(event.start)
    e_end = ensure_aware(event.end)

    if not overlaps(b_start, b_end, e_start, e_end):
        return None
    if b_start == e_start and b_end == e_end:
        return ConflictType.EXACT_MATCH
    return ConflictType.OVERLAP


def find_conflicts(
    bookings: list[Booking], events: list[ExternalEvent]
) -> list[ConflictRecord]:
    """One record per colliding (booking, event) pair."""
    conflicts: list[ConflictRecord] = []
    for booking in bookings:
        for event in events:
            if event.all_day:
                continue
            kind = classify(booking, event)
            if kind is None:
                continue
            conflicts.append(
                ConflictRecord(
                    booking_id=booking.id,
                    conflict_with=event.title or UNTITLED_EVENT,
                    conflict_at=booking.scheduled_start,
                    conflict_type=kind,
                )
            )
    return conflicts


class ConflictDetector:
    def __init__(
        self,
        store: BookingStore,
        credentials: CredentialProvider,
        client_factory: ClientFactory,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._credentials = credentials
        self._client_factory = client_factory
        self._settings = settings or default_settings
        self._clock = clock

    async def check(
        self, user_id: str, window: EventWindow | None = None
    ) -> ConflictReport:
        now = self._clock()
        if window is None:
            window = window_from_now(now, self._settings.conflict_window_days)

        token = await self._credentials.get_valid_token(user_id)
        if token is None:
            log.debug("Conflict check skipped: user %s has no calendar connected", user_id)
            return ConflictReport()

        client = self._client_factory(token)
        listed = await client.list_events(window, self._settings.conflict_max_results)
        if not listed.ok:
            log.warning("Conflict check for user %s could not list events: %s", user_id, listed.error)
            return ConflictReport()

        bookings = await self._store.find_bookings(
            BookingFilter(
                user_id=user_id,
                statuses=SYNCABLE_STATUSES,
                start_from=window.start,
                start_to=window.end,
            )
        )
        bookings = [b for b in bookings if b.is_syncable(now)]

        conflicts = find_conflicts(bookings, listed.value or [])
        if conflicts:
            log.info("User %s has %d schedule conflict(s)", user_id, len(conflicts))
        return ConflictReport(has_conflicts=bool(conflicts), conflicts=conflicts)
