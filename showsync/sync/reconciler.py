"""Single-booking reconciliation against every participant's calendar.

``reconcile`` makes the booking's remote events match its current state
(create on first sync, merge-update afterwards); ``remove`` deletes them.
Both fan out to each participant whose calendar is connected and hold a
per-booking lock for their whole run, so two requests for the same booking
never interleave inside one process.  Across processes the
``external_event_id`` write is a compare-and-set on the store.

Only one external event id is stored per booking: when both participants
get a newly created event, the first target's id (performer before venue)
is kept and the other is logged.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncIterator, Awaitable, Callable

from showsync.calendar_providers.base import CalendarClient, ClientFactory, ProviderResult
from showsync.config import Settings, settings as default_settings
from showsync.credentials import CredentialProvider, utcnow
from showsync.errors import InfrastructureError, SyncErrorKind
from showsync.models.booking import Booking
from showsync.models.results import SyncResult, TargetOutcome
from showsync.store import BookingStore
from showsync.sync.pool import run_bounded
from showsync.sync.translator import EventTranslator

log = logging.getLogger("showsync.reconciler")


@dataclass
class Target:
    """A participant's connected calendar."""

    user_id: str
    client: CalendarClient


@dataclass
class _BookingLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    holders: int = 0  # tasks holding or waiting on ``lock``


class SyncReconciler:
    def __init__(
        self,
        store: BookingStore,
        credentials: CredentialProvider,
        client_factory: ClientFactory,
        translator: EventTranslator | None = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._credentials = credentials
        self._client_factory = client_factory
        self._settings = settings or default_settings
        self._translator = translator or EventTranslator(self._settings)
        self._clock = clock
        self._booking_locks: dict[str, _BookingLock] = {}

    @asynccontextmanager
    async def _booking_lock(self, booking_id: str) -> AsyncIterator[None]:
        """Hold the booking's lock; the entry is dropped once nobody holds or awaits it."""
        entry = self._booking_locks.get(booking_id)
        if entry is None:
            entry = self._booking_locks[booking_id] = _BookingLock()
        entry.holders += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.holders -= 1
            if entry.holders == 0:
                del self._booking_locks[booking_id]

    async def resolve_targets(self, booking: Booking) -> list[Target]:
        """Participants holding a valid token, performer first."""
        targets: list[Target] = []
        for user_id in dict.fromkeys(booking.participant_user_ids):
            token = await self._credentials.get_valid_token(user_id)
            if token is None:
                log.debug("User %s has no valid calendar token", user_id)
                continue
            targets.append(Target(user_id=user_id, client=self._client_factory(token)))
        return targets

    async def _fan_out(
        self,
        targets: list[Target],
        operation: str,
        call: Callable[[CalendarClient], Awaitable[ProviderResult]],
    ) -> list[TargetOutcome]:
        async def run(target: Target) -> TargetOutcome:
            try:
                result = await call(target.client)
            except InfrastructureError:
                raise
            except Exception as e:
                log.exception("%s for user %s raised", operation, target.user_id)
                result = ProviderResult.failure(str(e) or type(e).__name__)
            if not result.ok:
                log.warning(
                    "%s for user %s failed: %s", operation, target.user_id, result.error
                )
            return TargetOutcome(
                user_id=target.user_id,
                operation=operation,
                success=result.ok,
                external_id=result.value if isinstance(result.value, str) else None,
                error=result.error or None,
            )

        return await run_bounded(targets, run, self._settings.sync_max_workers)

    # ── reconcile ────────────────────────────────────────────────

    async def reconcile(self, booking_id: str) -> SyncResult:
        """Create or update the booking's events on every target calendar."""
        async with self._booking_lock(booking_id):
            return await self._reconcile(booking_id)

    async def _reconcile(self, booking_id: str) -> SyncResult:
        booking = await self._store.get_booking(booking_id)
        if booking is None:
            return SyncResult.failure(
                SyncErrorKind.NOT_FOUND, f"Booking {booking_id} not found"
            )

        now = self._clock()
        if not booking.is_syncable(now):
            return SyncResult.failure(
                SyncErrorKind.INVALID_STATE,
                f"Booking cannot be synchronized. Current status: {booking.status.value}"
                + ("" if booking.scheduled_start > now else " (already started)"),
            )

        targets = await self.resolve_targets(booking)
        if not targets:
            return SyncResult.failure(
                SyncErrorKind.NO_TARGETS, "No participant has a calendar connected"
            )

        existing_id = booking.external_event_id
        if existing_id is None:
            event = self._translator.translate(booking)
            outcomes = await self._fan_out(
                targets, "create", lambda client: client.create_event(event)
            )
        else:
            changes = self._translator.translate_changes(booking)
            outcomes = await self._fan_out(
                targets, "update", lambda client: client.update_event(existing_id, changes)
            )

        succeeded = [o for o in outcomes if o.success]
        failed = [o for o in outcomes if not o.success]

        if not succeeded:
            first = failed[0]
            return SyncResult.failure(
                SyncErrorKind.PROVIDER_ERROR,
                f"Synchronization failed: {first.error}",
                error=first.error,
                actions=outcomes,
            )

        if existing_id is None:
            external_id = await self._store_created_id(booking_id, succeeded, now)
        else:
            external_id = existing_id
            await self._store.update_sync_state(
                booking_id,
                external_event_id=existing_id,
                synced=True,
                last_sync_at=now,
                expected_event_id=existing_id,
            )

        message = f"Synchronized with {len(succeeded)} calendar(s)"
        if failed:
            message += f", {len(failed)} failed"
        log.info("Booking %s: %s", booking_id, message)

        return SyncResult(
            success=True,
            message=message,
            external_id=external_id,
            synced_at=now,
            actions=outcomes,
        )

    async def _store_created_id(
        self, booking_id: str, created: list[TargetOutcome], now: datetime
    ) -> str | None:
        """Persist the first created id unless another writer got there first."""
        winner = created[0].external_id
        for extra in created[1:]:
            log.warning(
                "Booking %s: event %s on user %s's calendar is not tracked "
                "(only %s is stored)",
                booking_id, extra.external_id, extra.user_id, winner,
            )

        stored = await self._store.update_sync_state(
            booking_id,
            external_event_id=winner,
            synced=True,
            last_sync_at=now,
            expected_event_id=None,
        )
        if stored:
            return winner

        current = await self._store.get_booking(booking_id)
        current_id = current.external_event_id if current else None
        log.warning(
            "Booking %s already tracks event %s; dropping newly created %s",
            booking_id, current_id, winner,
        )
        if current_id is not None:
            await self._store.update_sync_state(
                booking_id,
                external_event_id=current_id,
                synced=True,
                last_sync_at=now,
                expected_event_id=current_id,
            )
        return current_id

    # ── remove ───────────────────────────────────────────────────

    async def remove(self, booking_id: str) -> SyncResult:
        """Delete the booking's event from every target calendar."""
        async with self._booking_lock(booking_id):
            return await self._remove(booking_id)

    async def _remove(self, booking_id: str) -> SyncResult:
        booking = await self._store.get_booking(booking_id)
        if booking is None:
            return SyncResult.failure(
                SyncErrorKind.NOT_FOUND, f"Booking {booking_id} not found"
            )

        event_id = booking.external_event_id
        if event_id is None:
            return SyncResult.failure(
                SyncErrorKind.NOT_SYNCED,
                "Booking is not synchronized with any calendar",
            )

        targets = await self.resolve_targets(booking)
        if not targets:
            return SyncResult.failure(
                SyncErrorKind.NO_TARGETS, "No participant has a calendar connected"
            )

        async def delete(client: CalendarClient) -> ProviderResult:
            result = await client.delete_event(event_id)
            if not result.ok and result.error_kind == SyncErrorKind.NOT_FOUND:
                # Already gone remotely: the desired end state holds
                return ProviderResult.success()
            return result

        outcomes = await self._fan_out(targets, "delete", delete)
        succeeded = [o for o in outcomes if o.success]

        if not succeeded:
            first = outcomes[0]
            return SyncResult.failure(
                SyncErrorKind.PROVIDER_ERROR,
                f"Failed to remove from every calendar: {first.error}",
                error=first.error,
                actions=outcomes,
            )

        now = self._clock()
        await self._store.update_sync_state(
            booking_id,
            external_event_id=None,
            synced=False,
            last_sync_at=now,
            expected_event_id=event_id,
        )

        message = f"Removed from {len(succeeded)} calendar(s)"
        failed = len(outcomes) - len(succeeded)
        if failed:
            message += f", {failed} failed"
        log.info("Booking %s: %s", booking_id, message)

        return SyncResult(success=True, message=message, synced_at=now, actions=outcomes)
