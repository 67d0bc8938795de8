"""Calendar tool descriptors."""

from pydantic import BaseModel, Field

from calendar_assistant.tools.base import ToolDescriptor


class GetCalendarEventsInput(BaseModel):
    """Input schema for listing a day's events."""

    date: str | None = Field(
        default=None,
        description="The date to get events for, in YYYY-MM-DD format. If not provided, defaults to today.",
        examples=["2025-06-28", "tomorrow"],
    )


class CreateCalendarEventInput(BaseModel):
    """Input schema for creating an event."""

    summary: str = Field(..., description="The title/summary of the event.")
    description: str | None = Field(default=None, description="Optional description of the event.")
    startDateTime: str = Field(
        ...,
        description=(
            "Start date and time of the event in ISO format or natural language "
            "(e.g., '2023-12-15T15:00:00' or 'next Monday at 3pm')."
        ),
    )
    endDateTime: str = Field(
        ...,
        description=(
            "End date and time of the event in ISO format or natural language "
            "(e.g., '2023-12-15T17:00:00' or 'next Monday at 5pm')."
        ),
    )


GET_CALENDAR_EVENTS = ToolDescriptor(
    name="get_calendar_events",
    description="Get a list of events from the user's Google Calendar for a specific day.",
    input_schema_class=GetCalendarEventsInput,
)

CREATE_CALENDAR_EVENT = ToolDescriptor(
    name="create_calendar_event",
    description="Create a new event in the user's Google Calendar.",
    input_schema_class=CreateCalendarEventInput,
)
