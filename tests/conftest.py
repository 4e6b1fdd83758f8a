import pytest

from fakes import (
    PERFORMER_ID,
    VENUE_ID,
    FakeCalendars,
    FakeCredentialProvider,
    clock,
)
from showsync.config import Settings
from showsync.store import InMemoryBookingStore
from showsync.sync.reconciler import SyncReconciler


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        google_client_id="client-id",
        google_client_secret="client-secret",
        calendar_timezone="America/Sao_Paulo",
        sync_max_workers=2,
    )


@pytest.fixture
def store():
    return InMemoryBookingStore()


@pytest.fixture
def calendars():
    return FakeCalendars()


@pytest.fixture
def credentials():
    return FakeCredentialProvider({PERFORMER_ID})


@pytest.fixture
def both_connected(credentials):
    credentials.connected.add(VENUE_ID)
    return credentials


@pytest.fixture
def reconciler(store, credentials, calendars, settings):
    return SyncReconciler(
        store, credentials, calendars.factory, settings=settings, clock=clock
    )
