"""Calendar client abstractions and implementations."""

from .base import (
    Attendee,
    CalendarClient,
    CalendarInfo,
    ClientFactory,
    EventWindow,
    ExternalEvent,
    ProviderResult,
    Reminder,
)

__all__ = [
    "Attendee",
    "CalendarClient",
    "CalendarInfo",
    "ClientFactory",
    "EventWindow",
    "ExternalEvent",
    "ProviderResult",
    "Reminder",
]
