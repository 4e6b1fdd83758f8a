"""Abstract base class for external calendar clients.

A ``CalendarClient`` is scoped to one account's credentials and exposes
create / read / update / delete / list against that account's calendar.
Implementations never raise for provider failures: every call returns a
``ProviderResult`` so the sync engine can record per-target failures and
keep going.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Generic, Optional, TypeVar

from showsync.errors import SyncErrorKind

if TYPE_CHECKING:
    from showsync.credentials import Token

T = TypeVar("T")

@dataclass
class Attendee:
    email: str
    display_name: str = ""
    response_status: str = "needsAction"  # needsAction | declined | tentative | accepted

@dataclass
class Reminder:
    method: str  # "email" | "popup"
    minutes: int

@dataclass
class ExternalEvent:
    """An event as represented in the external calendar.

    ``None`` on an optional field means "not supplied": on update the
    remote value is kept.
    """

    title: str
    start: datetime
    end: datetime
    time_zone: str = ""
    id: Optional[str] = None
    description: str = ""
    location: str = ""
    attendees: Optional[list[Attendee]] = None
    reminders: Optional[list[Reminder]] = None
    color_id: Optional[str] = None
    status: str = "confirmed"  # confirmed | tentative | cancelled
    all_day: bool = False

@dataclass
class EventWindow:
    """A half-open ``[start, end)`` range of time."""

    start: datetime
    end: datetime


@dataclass
class CalendarInfo:
    calendar_id: str
    display_name: str
    time_zone: str

@dataclass
class ProviderResult(Generic[T]):
    """Outcome of a single provider call."""

    ok: bool
    value: Optional[T] = None
    error: str = ""
    error_kind: Optional[SyncErrorKind] = None
    status: Optional[int] = None  # HTTP status, when the provider gave one

    @classmethod
    def success(cls, value: Optional[T] = None) -> "ProviderResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(
        cls,
        error: str,
        status: Optional[int] = None,
        kind: SyncErrorKind = SyncErrorKind.PROVIDER_ERROR,
    ) -> "ProviderResult[T]":
        return cls(ok=False, error=error, error_kind=kind, status=status)

class CalendarClient(ABC):
    """Abstract calendar backend bound to one account."""

    @abstractmethod
    async def create_event(self, event: ExternalEvent) -> ProviderResult[str]:
        """Insert ``event``; the result value is the provider-assigned id."""

    @abstractmethod
    async def update_event(
        self, event_id: str, changes: ExternalEvent
    ) -> ProviderResult[None]:
        """Merge ``changes`` into the existing remote event.

        Fields left empty or ``None`` on ``changes`` keep their remote value.
        """

    @abstractmethod
    async def delete_event(self, event_id: str) -> ProviderResult[None]:
        """Delete the remote event."""

    @abstractmethod
    async def get_event(self, event_id: str) -> ProviderResult[ExternalEvent]:
        """Fetch a single remote event."""

    @abstractmethod
    async def list_events(
        self, window: EventWindow, max_results: int = 50
    ) -> ProviderResult[list[ExternalEvent]]:
        """List single (expanded) events in ``window`` ordered by start time."""

    @abstractmethod
    async def check_access(self) -> ProviderResult[CalendarInfo]:
        """Confirm the calendar is reachable and describe it."""

# Builds a client bound to one user's token
ClientFactory = Callable[["Token"], CalendarClient]
