"""Google Calendar client implementation.

Uses a user's OAuth token to talk to the Calendar API v3.  The synchronous
``googleapiclient`` calls run in the default thread pool so the event loop
is never blocked.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, time, timezone
from functools import partial
from typing import Any, Optional
from zoneinfo import ZoneInfo

from google.auth.exceptions import GoogleAuthError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from httplib2 import HttpLib2Error

from showsync.config import Settings, settings as default_settings
from showsync.credentials import Token
from showsync.errors import SyncErrorKind

from .base import (
    Attendee,
    CalendarClient,
    CalendarInfo,
    EventWindow,
    ExternalEvent,
    ProviderResult,
    Reminder,
)

log = logging.getLogger("showsync.google")

SCOPES = [
    "https://www.googleapis.com/auth/calendar",
    "https://www.googleapis.com/auth/calendar.events",
]

# Applied on create when the event carries no reminders of its own
DEFAULT_REMINDERS = [Reminder("email", 60), Reminder("popup", 15)]

_MISSING_STATUSES = {404, 410}

# Everything the API client raises for a failed call
_API_ERRORS = (HttpError, GoogleAuthError, HttpLib2Error, OSError)


class GoogleCalendarClient(CalendarClient):
    """CalendarClient backed by Google Calendar API v3."""

    def __init__(self, token: Token, settings: Settings | None = None) -> None:
        self._settings = settings or default_settings
        self._calendar_id = self._settings.google_calendar_id
        self._credentials = Credentials(
            token=token.access_token,
            refresh_token=token.refresh_token,
            token_uri=self._settings.google_token_uri,
            client_id=self._settings.google_client_id or None,
            client_secret=self._settings.google_client_secret or None,
            scopes=SCOPES,
        )
        self._service = build(
            "calendar", "v3", credentials=self._credentials, cache_discovery=False
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _run_in_executor(self, func, *args, **kwargs) -> Any:
        """Run a synchronous Google API call in the default thread pool."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, *args, **kwargs))

    async def _execute(self, request) -> Any:
        return await self._run_in_executor(request.execute)

    @staticmethod
    def _to_rfc3339(dt: datetime) -> str:
        """Convert a datetime to an RFC 3339 string with timezone."""
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.isoformat()

    def _time_body(self, dt: datetime, time_zone: str) -> dict[str, str]:
        return {
            "dateTime": self._to_rfc3339(dt),
            "timeZone": time_zone or self._settings.calendar_timezone,
        }

    def _parse_time(self, raw: dict[str, Any]) -> tuple[datetime, bool]:
        """Parse a Google start/end object; all-day dates become local midnight."""
        if raw.get("dateTime"):
            return datetime.fromisoformat(raw["dateTime"].replace("Z", "+00:00")), False
        tz = ZoneInfo(raw.get("timeZone") or self._settings.calendar_timezone)
        day = datetime.fromisoformat(raw["date"]).date()
        return datetime.combine(day, time.min, tzinfo=tz), True

    def _from_resource(self, item: dict[str, Any]) -> ExternalEvent:
        start, all_day = self._parse_time(item.get("start", {}))
        end, _ = self._parse_time(item.get("end", {}))
        reminders = item.get("reminders", {}).get("overrides")
        return ExternalEvent(
            id=item.get("id"),
            title=item.get("summary", ""),
            description=item.get("description", ""),
            location=item.get("location", ""),
            start=start,
            end=end,
            time_zone=item.get("start", {}).get("timeZone", ""),
            attendees=[
                Attendee(
                    email=a.get("email", ""),
                    display_name=a.get("displayName", ""),
                    response_status=a.get("responseStatus", "needsAction"),
                )
                for a in item.get("attendees", [])
            ],
            reminders=(
                [Reminder(r["method"], r["minutes"]) for r in reminders]
                if reminders is not None
                else None
            ),
            color_id=item.get("colorId"),
            status=item.get("status", "confirmed"),
            all_day=all_day,
        )

    @staticmethod
    def _attendees_body(attendees: list[Attendee]) -> list[dict[str, str]]:
        return [
            {
                "email": a.email,
                "displayName": a.display_name,
                "responseStatus": a.response_status,
            }
            for a in attendees
        ]

    @staticmethod
    def _reminders_body(reminders: list[Reminder]) -> dict[str, Any]:
        return {
            "useDefault": False,
            "overrides": [{"method": r.method, "minutes": r.minutes} for r in reminders],
        }

    def _failure(self, action: str, exc: Exception) -> ProviderResult:
        status: Optional[int] = None
        kind = SyncErrorKind.PROVIDER_ERROR
        if isinstance(exc, HttpError):
            status = exc.resp.status
            message = exc.reason if hasattr(exc, "reason") else str(exc)
            if status in _MISSING_STATUSES:
                kind = SyncErrorKind.NOT_FOUND
        else:
            message = str(exc)
        log.warning(
            "Google Calendar %s failed on calendar %s (status=%s): %s",
            action, self._calendar_id, status, message,
        )
        return ProviderResult.failure(message, status=status, kind=kind)

    # ------------------------------------------------------------------
    # CalendarClient interface
    # ------------------------------------------------------------------

    async def create_event(self, event: ExternalEvent) -> ProviderResult[str]:
        """Insert an event; sends invitations to any attendees."""
        body: dict[str, Any] = {
            "summary": event.title,
            "description": event.description,
            "location": event.location,
            "start": self._time_body(event.start, event.time_zone),
            "end": self._time_body(event.end, event.time_zone),
            "reminders": self._reminders_body(
                event.reminders if event.reminders is not None else DEFAULT_REMINDERS
            ),
            "colorId": event.color_id or self._settings.event_color_id,
            "status": event.status or "confirmed",
        }
        if event.attendees:
            body["attendees"] = self._attendees_body(event.attendees)
        if self._settings.debug:
            log.debug("Insert body for calendar %s: %s", self._calendar_id, body)

        try:
            result = await self._execute(
                self._service.events().insert(
                    calendarId=self._calendar_id, body=body, sendUpdates="all"
                )
            )
        except _API_ERRORS as e:
            return self._failure("create", e)

        event_id = result.get("id") if result else None
        if not event_id:
            return ProviderResult.failure("Google Calendar returned no event id")

        log.info("Created event %s on calendar %s", event_id, self._calendar_id)
        return ProviderResult.success(event_id)

    async def update_event(
        self, event_id: str, changes: ExternalEvent
    ) -> ProviderResult[None]:
        """Read the remote event, overlay the supplied fields and write it back."""
        try:
            existing = await self._execute(
                self._service.events().get(calendarId=self._calendar_id, eventId=event_id)
            )
        except _API_ERRORS as e:
            return self._failure("update", e)

        if not existing:
            return ProviderResult.failure(
                f"Event {event_id} not found", kind=SyncErrorKind.NOT_FOUND
            )

        body = dict(existing)
        body["summary"] = changes.title or existing.get("summary", "")
        body["description"] = changes.description or existing.get("description", "")
        body["location"] = changes.location or existing.get("location", "")
        body["status"] = changes.status or existing.get("status", "confirmed")
        if changes.start is not None:
            body["start"] = self._time_body(changes.start, changes.time_zone)
        if changes.end is not None:
            body["end"] = self._time_body(changes.end, changes.time_zone)
        if changes.attendees is not None:
            body["attendees"] = self._attendees_body(changes.attendees)
        if changes.reminders is not None:
            body["reminders"] = self._reminders_body(changes.reminders)
        if changes.color_id is not None:
            body["colorId"] = changes.color_id
        if self._settings.debug:
            log.debug("Update body for event %s: %s", event_id, body)

        try:
            await self._execute(
                self._service.events().update(
                    calendarId=self._calendar_id, eventId=event_id, body=body
                )
            )
        except _API_ERRORS as e:
            return self._failure("update", e)

        log.info("Updated event %s on calendar %s", event_id, self._calendar_id)
        return ProviderResult.success()

    async def delete_event(self, event_id: str) -> ProviderResult[None]:
        try:
            await self._execute(
                self._service.events().delete(
                    calendarId=self._calendar_id, eventId=event_id
                )
            )
        except _API_ERRORS as e:
            return self._failure("delete", e)

        log.info("Deleted event %s on calendar %s", event_id, self._calendar_id)
        return ProviderResult.success()

    async def get_event(self, event_id: str) -> ProviderResult[ExternalEvent]:
        try:
            item = await self._execute(
                self._service.events().get(calendarId=self._calendar_id, eventId=event_id)
            )
        except _API_ERRORS as e:
            return self._failure("get", e)

        if not item:
            return ProviderResult.failure(
                f"Event {event_id} not found", kind=SyncErrorKind.NOT_FOUND
            )
        return ProviderResult.success(self._from_resource(item))

    async def list_events(
        self, window: EventWindow, max_results: int = 50
    ) -> ProviderResult[list[ExternalEvent]]:
        try:
            response = await self._execute(
                self._service.events().list(
                    calendarId=self._calendar_id,
                    timeMin=self._to_rfc3339(window.start),
                    timeMax=self._to_rfc3339(window.end),
                    singleEvents=True,
                    orderBy="startTime",
                    maxResults=max_results,
                )
            )
        except _API_ERRORS as e:
            return self._failure("list", e)

        events = [self._from_resource(item) for item in (response or {}).get("items", [])]
        return ProviderResult.success(events)

    async def check_access(self) -> ProviderResult[CalendarInfo]:
        try:
            data = await self._execute(
                self._service.calendars().get(calendarId=self._calendar_id)
            )
        except _API_ERRORS as e:
            return self._failure("access check", e)

        if not data:
            return ProviderResult.failure("Calendar could not be reached")

        return ProviderResult.success(
            CalendarInfo(
                calendar_id=data.get("id", self._calendar_id),
                display_name=data.get("summary", "Primary calendar"),
                time_zone=data.get("timeZone", self._settings.calendar_timezone),
            )
        )


def google_client_factory(settings: Settings | None = None):
    """Return a ``Token -> GoogleCalendarClient`` factory bound to ``settings``."""

    def factory(token: Token) -> GoogleCalendarClient:
        return GoogleCalendarClient(token, settings=settings)

    return factory
