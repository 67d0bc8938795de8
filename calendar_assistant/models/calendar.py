"""Calendar tool result models."""

from typing import Any

from pydantic import BaseModel


class EventSummary(BaseModel):
    """Trimmed view of a calendar event handed to the model."""

    id: str | None = None
    summary: str | None = None
    description: str | None = None
    location: str | None = None
    start: str | None = None
    end: str | None = None
    status: str | None = None
    htmlLink: str | None = None

    @classmethod
    def from_item(cls, item: dict[str, Any]) -> "EventSummary":
        """Build a summary from a raw calendar API event resource."""
        start = item.get("start") or {}
        end = item.get("end") or {}
        return cls(
            id=item.get("id"),
            summary=item.get("summary"),
            description=item.get("description"),
            location=item.get("location"),
            # All-day events carry "date" instead of "dateTime"
            start=start.get("dateTime") or start.get("date"),
            end=end.get("dateTime") or end.get("date"),
            status=item.get("status"),
            htmlLink=item.get("htmlLink"),
        )


class EventsResult(BaseModel):
    """Result of listing events: either ``events`` or ``error`` is set."""

    events: list[EventSummary] | None = None
    error: str | None = None

    def to_response(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class CreateEventResult(BaseModel):
    """Result of creating an event."""

    success: bool
    event: EventSummary | None = None
    error: str | None = None

    def to_response(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)
