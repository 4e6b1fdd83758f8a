"""Booking -> external calendar event translation.

Pure and deterministic: the same booking and settings always produce the
same event.  The description is shown verbatim to both parties inside
their calendars, so section order and presence rules matter.
"""

from __future__ import annotations

from dataclasses import replace

from showsync.calendar_providers.base import Attendee, ExternalEvent, Reminder
from showsync.config import Settings, settings as default_settings
from showsync.dateutils import ensure_aware, format_show_datetime
from showsync.models.booking import Address, Booking

DEFAULT_PERFORMER_NAME = "Performer"
DEFAULT_VENUE_NAME = "Venue"

# One day (email), one hour and fifteen minutes (popup) before the show
SHOW_REMINDERS = (
    Reminder("email", 24 * 60),
    Reminder("popup", 60),
    Reminder("popup", 15),
)


def format_location(address: Address | None) -> str:
    """``street, number, complement - neighborhood, city/state - CEP: code``."""
    if address is None:
        return ""
    location = address.street
    if address.number:
        location += f", {address.number}"
    if address.complement:
        location += f", {address.complement}"
    location += f" - {address.neighborhood}, {address.city}/{address.state}"
    if address.postal_code:
        location += f" - CEP: {address.postal_code}"
    return location


class EventTranslator:
    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or default_settings

    @staticmethod
    def _names(booking: Booking) -> tuple[str, str]:
        return (
            booking.performer.name or DEFAULT_PERFORMER_NAME,
            booking.venue.name or DEFAULT_VENUE_NAME,
        )

    def title(self, booking: Booking) -> str:
        if booking.title:
            return booking.title
        performer, venue = self._names(booking)
        return f"Show: {performer} - {venue}"

    def description(self, booking: Booking) -> str:
        performer, venue = self._names(booking)
        when = format_show_datetime(booking.scheduled_start, self._settings.calendar_timezone)

        text = "🎵 SHOW BOOKING\n\n"
        text += f"📅 Date: {when}\n"
        text += f"⏰ Duration: {booking.duration_minutes} minutes\n"
        text += f"🎤 Performer: {performer}\n"
        text += f"🏢 Venue: {venue}\n"

        if booking.final_value is not None:
            text += f"💰 Value: {self._settings.currency_symbol} {booking.final_value:.2f}\n"

        if booking.event_description:
            text += f"\n📝 Description: {booking.event_description}\n"

        tech: list[str] = []
        if booking.needs_sound:
            tech.append("🔊 Sound required")
        if booking.needs_lighting:
            tech.append("💡 Lighting required")
        if booking.required_instruments:
            tech.append(f"🎸 Instruments: {booking.required_instruments}")
        if tech:
            text += "\n🔧 Technical needs:\n" + "\n".join(tech) + "\n"

        if booking.requester_notes:
            text += f"\n💬 Notes: {booking.requester_notes}\n"

        text += f"\n🆔 Booking ID: {booking.id}"
        return text

    def attendees(self, booking: Booking) -> list[Attendee]:
        performer, venue = self._names(booking)
        attendees: list[Attendee] = []
        if booking.performer.email:
            attendees.append(
                Attendee(booking.performer.email, f"{performer} (Performer)", "accepted")
            )
        if booking.venue.email:
            attendees.append(
                Attendee(booking.venue.email, f"{venue} (Venue)", "accepted")
            )
        return attendees

    def translate(self, booking: Booking) -> ExternalEvent:
        """Full event, as sent when creating it."""
        start = ensure_aware(booking.scheduled_start)
        return ExternalEvent(
            title=self.title(booking),
            description=self.description(booking),
            location=format_location(booking.venue.address),
            start=start,
            end=ensure_aware(booking.scheduled_end),
            time_zone=self._settings.calendar_timezone,
            attendees=self.attendees(booking),
            reminders=list(SHOW_REMINDERS),
            color_id=self._settings.event_color_id,
            status="confirmed",
        )

    def translate_changes(self, booking: Booking) -> ExternalEvent:
        """Event used on update: reminders stay whatever the remote event has."""
        return replace(self.translate(booking), reminders=None)
