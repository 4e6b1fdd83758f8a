"""Wires the sync engine together.

Typical use::

    service = create_sync_service(booking_store, token_store)
    await service.reconcile("booking-42")
    report = await service.check_health("user-7")
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from showsync.calendar_providers.base import ClientFactory, EventWindow
from showsync.config import Settings, settings as default_settings
from showsync.credentials import (
    CredentialProvider,
    GoogleCredentialProvider,
    TokenStore,
    utcnow,
)
from showsync.models.results import (
    BulkSyncResult,
    ConflictReport,
    HealthReport,
    OrchestrationResult,
    SyncResult,
    SyncStatistics,
)
from showsync.store import BookingStore
from showsync.sync.conflicts import ConflictDetector
from showsync.sync.health import HealthMonitor
from showsync.sync.orchestrator import SyncOrchestrator
from showsync.sync.reconciler import SyncReconciler
from showsync.sync.stats import StatisticsAggregator
from showsync.sync.translator import EventTranslator

log = logging.getLogger("showsync.service")


class CalendarSyncService:
    """One object exposing every sync operation."""

    def __init__(
        self,
        store: BookingStore,
        credentials: CredentialProvider,
        client_factory: ClientFactory,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.settings = settings or default_settings
        self.translator = EventTranslator(self.settings)
        self.reconciler = SyncReconciler(
            store, credentials, client_factory,
            translator=self.translator, settings=self.settings, clock=clock,
        )
        self.conflicts = ConflictDetector(
            store, credentials, client_factory, settings=self.settings, clock=clock
        )
        self.orchestrator = SyncOrchestrator(
            store, self.reconciler, credentials, settings=self.settings, clock=clock
        )
        self.statistics = StatisticsAggregator(store, clock=clock)
        self.health = HealthMonitor(
            credentials, client_factory, self.statistics, self.conflicts,
            settings=self.settings, clock=clock,
        )

    async def reconcile(self, booking_id: str) -> SyncResult:
        return await self.reconciler.reconcile(booking_id)

    async def remove(self, booking_id: str) -> SyncResult:
        return await self.reconciler.remove(booking_id)

    async def intelligent_sync(self, user_id: str) -> OrchestrationResult:
        return await self.orchestrator.intelligent_sync(user_id)

    async def sync_all_user_bookings(self, user_id: str) -> BulkSyncResult:
        return await self.orchestrator.sync_all_user_bookings(user_id)

    async def check_conflicts(
        self, user_id: str, window: EventWindow | None = None
    ) -> ConflictReport:
        return await self.conflicts.check(user_id, window)

    async def stats(self, user_id: str) -> SyncStatistics:
        return await self.statistics.stats(user_id)

    async def check_health(self, user_id: str) -> HealthReport:
        return await self.health.check_health(user_id)


def create_sync_service(
    store: BookingStore,
    token_store: TokenStore,
    settings: Settings | None = None,
    client_factory: ClientFactory | None = None,
) -> CalendarSyncService:
    """Build a service backed by Google Calendar unless a factory is given."""
    settings = settings or default_settings
    for warning in settings.validate_startup():
        log.warning(warning)

    if client_factory is None:
        from showsync.calendar_providers.google import google_client_factory

        client_factory = google_client_factory(settings)

    credentials = GoogleCredentialProvider(token_store, settings=settings)
    return CalendarSyncService(store, credentials, client_factory, settings=settings)
