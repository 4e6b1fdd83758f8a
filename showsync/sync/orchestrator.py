"""Batch synchronization for one user's bookings.

``intelligent_sync`` diffs a snapshot of the user's bookings into create,
update and delete actions and drives the reconciler for each.  The three
predicates are mutually exclusive, so a booking lands in at most one phase.
A failed booking is logged in the action list and the batch moves on; only
an ``InfrastructureError`` ends the batch, as a single fatal result.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from showsync.config import Settings, settings as default_settings
from showsync.credentials import CredentialProvider, utcnow
from showsync.errors import InfrastructureError, SyncErrorKind
from showsync.models.booking import SYNCABLE_STATUSES, WITHDRAWN_STATUSES, Booking
from showsync.models.results import (
    ActionLogEntry,
    BookingSyncDetail,
    BulkSyncResult,
    OrchestrationResult,
    SyncAction,
    SyncActionType,
    SyncResult,
)
from showsync.store import BookingFilter, BookingStore
from showsync.sync.pool import run_bounded
from showsync.sync.reconciler import SyncReconciler

log = logging.getLogger("showsync.orchestrator")

# Phases run in this order
PHASES = (SyncActionType.CREATE, SyncActionType.UPDATE, SyncActionType.DELETE)


def classify_booking(booking: Booking, now: datetime) -> SyncActionType | None:
    """Which action, if any, a booking needs right now."""
    if booking.is_syncable(now):
        if booking.external_event_id is None:
            return SyncActionType.CREATE
        if booking.synced and booking.needs_update():
            return SyncActionType.UPDATE
        return None
    if booking.status in WITHDRAWN_STATUSES and booking.external_event_id is not None:
        return SyncActionType.DELETE
    return None


def plan_actions(bookings: list[Booking], now: datetime) -> list[SyncAction]:
    """Diff a snapshot into actions, grouped by phase."""
    by_phase: dict[SyncActionType, list[SyncAction]] = {phase: [] for phase in PHASES}
    for booking in bookings:
        action = classify_booking(booking, now)
        if action is not None:
            by_phase[action].append(SyncAction(type=action, booking_id=booking.id))
    return [action for phase in PHASES for action in by_phase[phase]]


def _unexpected_failure(booking_id: str, exc: Exception) -> SyncResult:
    error = str(exc) or type(exc).__name__
    return SyncResult.failure(
        SyncErrorKind.PROVIDER_ERROR,
        f"Synchronization of booking {booking_id} failed: {error}",
        error=error,
    )


class SyncOrchestrator:
    def __init__(
        self,
        store: BookingStore,
        reconciler: SyncReconciler,
        credentials: CredentialProvider,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._reconciler = reconciler
        self._credentials = credentials
        self._settings = settings or default_settings
        self._clock = clock

    async def _execute(self, action: SyncAction) -> ActionLogEntry:
        try:
            if action.type == SyncActionType.DELETE:
                result = await self._reconciler.remove(action.booking_id)
            else:
                result = await self._reconciler.reconcile(action.booking_id)
        except InfrastructureError:
            raise
        except Exception as e:
            log.exception("%s of booking %s raised", action.type.value, action.booking_id)
            result = _unexpected_failure(action.booking_id, e)
        return ActionLogEntry(
            type=action.type,
            booking_id=action.booking_id,
            success=result.success,
            message=result.message,
            error=result.error,
        )

    async def _reconcile_one(self, booking_id: str) -> SyncResult:
        try:
            return await self._reconciler.reconcile(booking_id)
        except InfrastructureError:
            raise
        except Exception as e:
            log.exception("Reconcile of booking %s raised", booking_id)
            return _unexpected_failure(booking_id, e)

    async def intelligent_sync(self, user_id: str) -> OrchestrationResult:
        """Create new, update modified and delete withdrawn bookings."""
        try:
            snapshot = await self._store.find_bookings(BookingFilter(user_id=user_id))
            plan = plan_actions(snapshot, self._clock())
            log.info(
                "Intelligent sync for user %s: %d booking(s), %d action(s)",
                user_id, len(snapshot), len(plan),
            )

            entries: list[ActionLogEntry] = []
            for phase in PHASES:
                phase_actions = [a for a in plan if a.type == phase]
                entries.extend(
                    await run_bounded(
                        phase_actions, self._execute, self._settings.sync_max_workers
                    )
                )
        except InfrastructureError as e:
            log.error("Intelligent sync for user %s aborted: %s", user_id, e)
            return OrchestrationResult(
                success=False, message=f"Intelligent sync failed: {e}"
            )

        ok = sum(1 for entry in entries if entry.success)
        return OrchestrationResult(
            success=True,
            message=(
                f"Intelligent sync finished: {ok} succeeded, "
                f"{len(entries) - ok} failed"
            ),
            actions=entries,
        )

    async def sync_all_user_bookings(self, user_id: str) -> BulkSyncResult:
        """Reconcile every syncable future booking, whatever its sync state."""
        try:
            if not await self._credentials.is_connected(user_id):
                return BulkSyncResult(
                    success=False, message="User has no calendar connected"
                )

            now = self._clock()
            bookings = await self._store.find_bookings(
                BookingFilter(user_id=user_id, statuses=SYNCABLE_STATUSES, start_from=now)
            )
            bookings = [b for b in bookings if b.is_syncable(now)]

            results: list[SyncResult] = await run_bounded(
                [b.id for b in bookings],
                self._reconcile_one,
                self._settings.sync_max_workers,
            )
        except InfrastructureError as e:
            log.error("Full sync for user %s aborted: %s", user_id, e)
            return BulkSyncResult(success=False, message=f"Full sync failed: {e}")

        details = [
            BookingSyncDetail(booking_id=b.id, success=r.success, message=r.message)
            for b, r in zip(bookings, results)
        ]
        synchronized = sum(1 for d in details if d.success)
        failed = len(details) - synchronized

        log.info(
            "Full sync for user %s: %d synchronized, %d failed",
            user_id, synchronized, failed,
        )
        return BulkSyncResult(
            success=True,
            message=f"Sync finished: {synchronized} succeeded, {failed} failed",
            total=len(details),
            synchronized=synchronized,
            failed=failed,
            details=details,
        )
