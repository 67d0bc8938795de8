"""Tests for the calendar gateway."""

from datetime import datetime
from zoneinfo import ZoneInfo

import httpx
import pytest
from conftest import REFERENCE_DATE, FakeCalendar

from calendar_assistant.clients.google_calendar import CalendarAPIError
from calendar_assistant.services.calendar import CREATE_ERROR, LIST_ERROR, CalendarGateway, day_window
from calendar_assistant.services.date_resolver import DateTimeResolver


class TestDayWindow:
    """Tests for the day window helper."""

    def test_window_spans_whole_day(self):
        """Test that the window runs from midnight to the last millisecond."""
        tz = ZoneInfo("America/New_York")
        start, end = day_window(datetime(2025, 6, 28, 15, 20, tzinfo=tz))

        assert start.isoformat(timespec="milliseconds") == "2025-06-28T00:00:00.000-04:00"
        assert end.isoformat(timespec="milliseconds") == "2025-06-28T23:59:59.999-04:00"


class TestListEvents:
    """Tests for listing a day's events."""

    @pytest.mark.asyncio
    async def test_tomorrow_queries_next_day_window(self, gateway, calendar):
        """Test that "tomorrow" lists the day after the reference date."""
        result = await gateway.list_events("tomorrow")

        assert result.error is None
        assert result.events == []
        assert calendar.list_calls == [
            {
                "calendar_id": "primary",
                "time_min": "2025-06-28T00:00:00.000+00:00",
                "time_max": "2025-06-28T23:59:59.999+00:00",
                "show_deleted": False,
                "single_events": True,
                "order_by": "startTime",
            }
        ]

    @pytest.mark.asyncio
    async def test_no_day_means_reference_day(self, gateway, calendar):
        """Test that omitting the day lists today."""
        await gateway.list_events()
        assert calendar.list_calls[0]["time_min"].startswith(REFERENCE_DATE.isoformat())

    @pytest.mark.asyncio
    async def test_window_uses_resolver_zone(self):
        """Test that the window is expressed in the user's zone."""
        calendar = FakeCalendar()
        resolver = DateTimeResolver("America/Los_Angeles", reference_date=REFERENCE_DATE)
        gateway = CalendarGateway(calendar, resolver)

        await gateway.list_events("2025-06-28")

        assert calendar.list_calls[0]["time_min"] == "2025-06-28T00:00:00.000-07:00"
        assert calendar.list_calls[0]["time_max"] == "2025-06-28T23:59:59.999-07:00"

    @pytest.mark.asyncio
    async def test_events_are_summarized(self, resolver):
        """Test that raw items are trimmed to summaries, all-day events included."""
        calendar = FakeCalendar(
            items=[
                {
                    "id": "a1",
                    "summary": "Standup",
                    "start": {"dateTime": "2025-06-27T09:00:00Z"},
                    "end": {"dateTime": "2025-06-27T09:15:00Z"},
                    "etag": "ignored",
                },
                {"id": "b2", "summary": "Holiday", "start": {"date": "2025-06-27"}, "end": {"date": "2025-06-28"}},
            ]
        )
        gateway = CalendarGateway(calendar, resolver)

        result = await gateway.list_events("today")

        assert [event.summary for event in result.events] == ["Standup", "Holiday"]
        assert result.events[1].start == "2025-06-27"
        assert "etag" not in result.to_response()["events"][0]

    @pytest.mark.asyncio
    async def test_failure_becomes_error_value(self, resolver):
        """Test that calendar failures are returned, not raised."""
        gateway = CalendarGateway(FakeCalendar(error=CalendarAPIError(401, "Invalid Credentials")), resolver)

        result = await gateway.list_events("today")

        assert result.to_response() == {"error": LIST_ERROR}

    @pytest.mark.asyncio
    async def test_transport_failure_becomes_error_value(self, resolver):
        """Test that network errors are also contained."""
        gateway = CalendarGateway(FakeCalendar(error=httpx.ConnectError("boom")), resolver)

        result = await gateway.list_events()

        assert result.error == LIST_ERROR


class TestCreateEvent:
    """Tests for creating events."""

    @pytest.mark.asyncio
    async def test_resource_shape(self, gateway, calendar):
        """Test the inserted resource carries ISO times and the zone."""
        result = await gateway.create_event(
            summary="Team meeting",
            start_date_time="tomorrow at 2pm",
            end_date_time="tomorrow at 3pm",
            description="Quarterly planning",
        )

        assert result.success is True
        assert calendar.inserted == [
            {
                "summary": "Team meeting",
                "start": {"dateTime": "2025-06-28T14:00:00+00:00", "timeZone": "UTC"},
                "end": {"dateTime": "2025-06-28T15:00:00+00:00", "timeZone": "UTC"},
                "description": "Quarterly planning",
            }
        ]
        assert result.event.id == "evt1"
        assert result.event.start == "2025-06-28T14:00:00+00:00"

    @pytest.mark.asyncio
    async def test_description_omitted_when_empty(self, gateway, calendar):
        """Test that an absent description is not sent."""
        await gateway.create_event("Lunch", "2025-06-28T12:00:00", "2025-06-28T13:00:00")

        assert "description" not in calendar.inserted[0]

    @pytest.mark.asyncio
    async def test_failure_becomes_error_value(self, resolver):
        """Test that insert failures are returned, not raised."""
        gateway = CalendarGateway(FakeCalendar(error=CalendarAPIError(403, "Forbidden")), resolver)

        result = await gateway.create_event("Lunch", "today at noon", "today at 1pm")

        assert result.to_response() == {"success": False, "error": CREATE_ERROR}
