"""Calendar gateway used by the conversation tools."""

from datetime import datetime, time

from calendar_assistant.clients.google_calendar import CalendarCapability
from calendar_assistant.models.calendar import CreateEventResult, EventsResult, EventSummary
from calendar_assistant.services.date_resolver import DateTimeResolver
from calendar_assistant.utils.logging import get_logger

logger = get_logger(__name__)

PRIMARY_CALENDAR = "primary"
LIST_ERROR = "Failed to fetch calendar events."
CREATE_ERROR = "Failed to create calendar event."


def day_window(day: datetime) -> tuple[datetime, datetime]:
    """Inclusive [00:00:00.000, 23:59:59.999] window of ``day`` in its own zone."""
    start = datetime.combine(day.date(), time.min, tzinfo=day.tzinfo)
    end = datetime.combine(day.date(), time(23, 59, 59, 999000), tzinfo=day.tzinfo)
    return start, end


class CalendarGateway:
    """Maps tool calls onto the calendar capability.

    Failures never propagate: they come back as result values carrying an
    ``error`` the model can relay to the user.
    """

    def __init__(self, calendar: CalendarCapability, resolver: DateTimeResolver):
        self.calendar = calendar
        self.resolver = resolver

    async def list_events(self, day: str | None = None) -> EventsResult:
        """List the events of one day (today when ``day`` is omitted)."""
        try:
            target = self.resolver.resolve_date(day) if day else self.resolver.today()
            # Window in the user's zone even when the parsed value carried another offset
            local_day = datetime.combine(target.date(), time.min, tzinfo=self.resolver.tz)
            time_min, time_max = day_window(local_day)

            response = await self.calendar.list_events(
                calendar_id=PRIMARY_CALENDAR,
                time_min=time_min.isoformat(timespec="milliseconds"),
                time_max=time_max.isoformat(timespec="milliseconds"),
                show_deleted=False,
                single_events=True,
                order_by="startTime",
            )

            events = [EventSummary.from_item(item) for item in response.get("items", [])]
            logger.info(f"Fetched {len(events)} events for {local_day.date().isoformat()}")
            return EventsResult(events=events)

        except Exception as e:
            logger.error(f"Calendar list error: {e}", exc_info=True)
            return EventsResult(error=LIST_ERROR)

    async def create_event(
        self,
        summary: str,
        start_date_time: str,
        end_date_time: str,
        description: str | None = None,
    ) -> CreateEventResult:
        """Create an event on the primary calendar."""
        try:
            start = self.resolver.resolve_datetime(start_date_time)
            end = self.resolver.resolve_datetime(end_date_time)
            timezone = self.resolver.timezone_name

            resource: dict = {
                "summary": summary,
                "start": {"dateTime": start.isoformat(), "timeZone": timezone},
                "end": {"dateTime": end.isoformat(), "timeZone": timezone},
            }
            if description:
                resource["description"] = description

            inserted = await self.calendar.insert_event(PRIMARY_CALENDAR, resource)

            logger.info(f"Created event {inserted.get('id')} ({summary!r}) at {start.isoformat()}")
            return CreateEventResult(success=True, event=EventSummary.from_item(inserted))

        except Exception as e:
            logger.error(f"Calendar create error: {e}", exc_info=True)
            return CreateEventResult(success=False, error=CREATE_ERROR)
