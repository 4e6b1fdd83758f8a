"""Read-only sync statistics for a user."""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from showsync.credentials import utcnow
from showsync.models.booking import Booking
from showsync.models.results import SyncStatistics
from showsync.store import BookingFilter, BookingStore


def sync_percentage(synced: int, total: int) -> int:
    """Rounded share of synced bookings; 0 when there is nothing to sync."""
    if total <= 0:
        return 0
    # Half-up, not Python's banker's rounding
    return int(100 * synced / total + 0.5)


def compute_statistics(
    bookings: list[Booking], now: datetime
) -> SyncStatistics:
    """Aggregate over all of one user's bookings."""
    active = [b for b in bookings if b.is_syncable(now)]
    synced = sum(1 for b in active if b.synced)
    errors = sum(1 for b in active if b.external_event_id is not None and not b.synced)
    sync_times = [b.last_sync_at for b in bookings if b.last_sync_at is not None]

    return SyncStatistics(
        total=len(active),
        synced=synced,
        unsynced=len(active) - synced,
        sync_errors=errors,
        last_sync_at=max(sync_times) if sync_times else None,
        sync_percentage=sync_percentage(synced, len(active)),
    )


class StatisticsAggregator:
    def __init__(
        self, store: BookingStore, clock: Callable[[], datetime] = utcnow
    ) -> None:
        self._store = store
        self._clock = clock

    async def stats(self, user_id: str) -> SyncStatistics:
        bookings = await self._store.find_bookings(BookingFilter(user_id=user_id))
        return compute_statistics(bookings, self._clock())
