"""Tests for GoogleCalendarClient against a mocked Calendar API."""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import httplib2
import pytest
from googleapiclient.errors import HttpError

from showsync.calendar_providers.base import (
    Attendee,
    CalendarClient,
    EventWindow,
    ExternalEvent,
    Reminder,
)
from showsync.calendar_providers.google import GoogleCalendarClient, google_client_factory
from showsync.credentials import Token
from showsync.errors import SyncErrorKind

START = datetime(2024, 6, 1, 20, 0, tzinfo=timezone.utc)


def http_error(status: int, message: str) -> HttpError:
    content = ('{"error": {"code": %d, "message": "%s"}}' % (status, message)).encode()
    return HttpError(httplib2.Response({"status": status}), content)


@pytest.fixture
def client(settings):
    """GoogleCalendarClient with the discovery build and credentials mocked."""
    with patch("showsync.calendar_providers.google.Credentials") as mock_creds, patch(
        "showsync.calendar_providers.google.build"
    ) as mock_build:
        c = GoogleCalendarClient(
            Token(access_token="access", refresh_token="refresh"), settings=settings
        )
        mock_creds.assert_called_once()
        assert mock_creds.call_args.kwargs["client_id"] == "client-id"
        c._service = mock_build.return_value
        return c


@pytest.fixture
def events_api(client):
    return client._service.events.return_value


def show_event(**overrides) -> ExternalEvent:
    data = dict(
        title="Show: The Strokes - Blue Note",
        start=START,
        end=START + timedelta(hours=2),
        time_zone="America/Sao_Paulo",
        description="🎵 SHOW BOOKING",
        location="Rua Augusta, 100",
        attendees=[Attendee("band@example.com", "The Strokes (Performer)", "accepted")],
        reminders=[Reminder("email", 1440), Reminder("popup", 60)],
    )
    data.update(overrides)
    return ExternalEvent(**data)


# ── create ──────────────────────────────────────────────────────────


class TestCreate:
    async def test_insert_body(self, client, events_api):
        events_api.insert.return_value.execute.return_value = {"id": "evt_123"}

        result = await client.create_event(show_event())

        assert result.ok is True
        assert result.value == "evt_123"
        kwargs = events_api.insert.call_args.kwargs
        assert kwargs["calendarId"] == "primary"
        assert kwargs["sendUpdates"] == "all"
        body = kwargs["body"]
        assert body["summary"] == "Show: The Strokes - Blue Note"
        assert body["start"] == {
            "dateTime": "2024-06-01T20:00:00+00:00",
            "timeZone": "America/Sao_Paulo",
        }
        assert body["colorId"] == "9"
        assert body["reminders"] == {
            "useDefault": False,
            "overrides": [
                {"method": "email", "minutes": 1440},
                {"method": "popup", "minutes": 60},
            ],
        }
        assert body["attendees"][0]["responseStatus"] == "accepted"

    async def test_default_reminders(self, client, events_api):
        events_api.insert.return_value.execute.return_value = {"id": "evt_1"}

        await client.create_event(show_event(reminders=None, attendees=None))

        body = events_api.insert.call_args.kwargs["body"]
        assert body["reminders"]["overrides"] == [
            {"method": "email", "minutes": 60},
            {"method": "popup", "minutes": 15},
        ]
        assert "attendees" not in body

    async def test_missing_id_is_a_failure(self, client, events_api):
        events_api.insert.return_value.execute.return_value = {}
        result = await client.create_event(show_event())
        assert result.ok is False

    async def test_http_error(self, client, events_api):
        events_api.insert.return_value.execute.side_effect = http_error(403, "Rate Limit Exceeded")

        result = await client.create_event(show_event())

        assert result.ok is False
        assert result.status == 403
        assert result.error_kind == SyncErrorKind.PROVIDER_ERROR

    async def test_transport_error(self, client, events_api):
        events_api.insert.return_value.execute.side_effect = httplib2.ServerNotFoundError(
            "Unable to find the server at www.googleapis.com"
        )

        result = await client.create_event(show_event())

        assert result.ok is False
        assert result.status is None
        assert result.error_kind == SyncErrorKind.PROVIDER_ERROR
        assert "Unable to find the server" in result.error


# ── update ──────────────────────────────────────────────────────────


class TestUpdate:
    async def test_merges_over_existing_event(self, client, events_api):
        events_api.get.return_value.execute.return_value = {
            "id": "evt_1",
            "summary": "Old title",
            "description": "Old description",
            "location": "Old place",
            "reminders": {"useDefault": True},
            "colorId": "3",
            "htmlLink": "https://calendar.google.com/event/evt_1",
        }

        changes = ExternalEvent(
            title="New title", start=START, end=START + timedelta(hours=1), reminders=None
        )
        result = await client.update_event("evt_1", changes)

        assert result.ok is True
        kwargs = events_api.update.call_args.kwargs
        assert kwargs["eventId"] == "evt_1"
        body = kwargs["body"]
        assert body["summary"] == "New title"
        assert body["description"] == "Old description"
        assert body["location"] == "Old place"
        assert body["reminders"] == {"useDefault": True}
        assert body["colorId"] == "3"
        assert body["htmlLink"] == "https://calendar.google.com/event/evt_1"
        assert body["end"]["dateTime"] == "2024-06-01T21:00:00+00:00"

    async def test_missing_remote_event(self, client, events_api):
        events_api.get.return_value.execute.side_effect = http_error(404, "Not Found")

        result = await client.update_event("gone", show_event())

        assert result.ok is False
        assert result.error_kind == SyncErrorKind.NOT_FOUND
        events_api.update.assert_not_called()


# ── delete / get / list / access ────────────────────────────────────


class TestReadsAndDelete:
    async def test_delete(self, client, events_api):
        events_api.delete.return_value.execute.return_value = ""
        result = await client.delete_event("evt_1")
        assert result.ok is True
        assert events_api.delete.call_args.kwargs == {"calendarId": "primary", "eventId": "evt_1"}

    @pytest.mark.parametrize("status", [404, 410])
    async def test_delete_missing_event_is_not_found(self, client, events_api, status):
        events_api.delete.return_value.execute.side_effect = http_error(status, "Gone")

        result = await client.delete_event("evt_1")

        assert result.error_kind == SyncErrorKind.NOT_FOUND
        assert result.status == status

    async def test_get_event(self, client, events_api):
        events_api.get.return_value.execute.return_value = {
            "id": "evt_1",
            "summary": "Show",
            "start": {"dateTime": "2024-06-01T20:00:00Z", "timeZone": "UTC"},
            "end": {"dateTime": "2024-06-01T22:00:00Z", "timeZone": "UTC"},
            "reminders": {"overrides": [{"method": "popup", "minutes": 15}]},
        }

        result = await client.get_event("evt_1")

        event = result.value
        assert event.start == START
        assert event.end == START + timedelta(hours=2)
        assert event.reminders == [Reminder("popup", 15)]
        assert event.all_day is False

    async def test_list_events(self, client, events_api):
        events_api.list.return_value.execute.return_value = {
            "items": [
                {
                    "id": "a",
                    "summary": "Holiday",
                    "start": {"date": "2024-06-02"},
                    "end": {"date": "2024-06-03"},
                },
                {
                    "id": "b",
                    "start": {"dateTime": "2024-06-02T10:00:00-03:00"},
                    "end": {"dateTime": "2024-06-02T11:00:00-03:00"},
                },
            ]
        }
        window = EventWindow(start=START, end=START + timedelta(days=30))

        result = await client.list_events(window, max_results=100)

        holiday, meeting = result.value
        assert holiday.all_day is True
        assert holiday.start.isoformat() == "2024-06-02T00:00:00-03:00"
        assert meeting.title == ""
        assert meeting.start == datetime(2024, 6, 2, 13, 0, tzinfo=timezone.utc)
        kwargs = events_api.list.call_args.kwargs
        assert kwargs["singleEvents"] is True
        assert kwargs["orderBy"] == "startTime"
        assert kwargs["maxResults"] == 100
        assert kwargs["timeMin"] == "2024-06-01T20:00:00+00:00"

    async def test_list_failure(self, client, events_api):
        events_api.list.return_value.execute.side_effect = OSError("connection reset")
        result = await client.list_events(EventWindow(START, START + timedelta(days=1)))
        assert result.ok is False
        assert result.error == "connection reset"

    async def test_check_access(self, client):
        client._service.calendars.return_value.get.return_value.execute.return_value = {
            "id": "band@example.com",
            "summary": "The Strokes",
            "timeZone": "America/Sao_Paulo",
        }

        result = await client.check_access()

        assert result.ok is True
        assert result.value.calendar_id == "band@example.com"
        assert result.value.display_name == "The Strokes"


class TestFactory:
    def test_factory_builds_clients(self, settings):
        with patch("showsync.calendar_providers.google.Credentials"), patch(
            "showsync.calendar_providers.google.build"
        ):
            factory = google_client_factory(settings)
            c = factory(Token(access_token="abc"))
        assert isinstance(c, CalendarClient)
        assert c._calendar_id == "primary"
