"""Google Calendar REST client."""

from typing import Any, Protocol
from urllib.parse import quote

import httpx

from calendar_assistant.utils.logging import get_logger

logger = get_logger(__name__)

CALENDAR_API_BASE = "https://www.googleapis.com/calendar/v3"


class CalendarAPIError(Exception):
    """Non-success answer from the calendar service."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"Calendar API error {status_code}: {message}")


class CalendarCapability(Protocol):
    """The two calendar operations the assistant needs."""

    async def list_events(
        self,
        calendar_id: str,
        time_min: str,
        time_max: str,
        show_deleted: bool = False,
        single_events: bool = True,
        order_by: str = "startTime",
    ) -> dict[str, Any]:
        """List events in a time window.

        Returns:
            The raw list response, with events under ``items``
        """
        ...

    async def insert_event(self, calendar_id: str, resource: dict[str, Any]) -> dict[str, Any]:
        """Create an event and return the inserted resource."""
        ...


class GoogleCalendarClient:
    """Calendar capability backed by the Google Calendar v3 REST API."""

    def __init__(
        self,
        access_token: str,
        base_url: str = CALENDAR_API_BASE,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            access_token: OAuth access token with calendar scope
            base_url: API root, overridable for testing
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _events_url(self, calendar_id: str) -> str:
        return f"{self.base_url}/calendars/{quote(calendar_id, safe='')}/events"

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}

    async def list_events(
        self,
        calendar_id: str,
        time_min: str,
        time_max: str,
        show_deleted: bool = False,
        single_events: bool = True,
        order_by: str = "startTime",
    ) -> dict[str, Any]:
        params = {
            "timeMin": time_min,
            "timeMax": time_max,
            "showDeleted": str(show_deleted).lower(),
            "singleEvents": str(single_events).lower(),
            "orderBy": order_by,
        }

        logger.debug(f"Listing events for {calendar_id} between {time_min} and {time_max}")
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.get(self._events_url(calendar_id), headers=self._headers(), params=params)

        self._raise_for_status(response)
        return response.json()

    async def insert_event(self, calendar_id: str, resource: dict[str, Any]) -> dict[str, Any]:
        logger.debug(f"Inserting event {resource.get('summary')!r} into {calendar_id}")
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(self._events_url(calendar_id), headers=self._headers(), json=resource)

        self._raise_for_status(response)
        return response.json()

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.status_code in (200, 201):
            return

        message = f"HTTP {response.status_code}"
        try:
            error_data = response.json() if response.text else {}
            message = error_data.get("error", {}).get("message", message)
        except ValueError:
            pass

        logger.error(f"Calendar API request failed: {message}")
        raise CalendarAPIError(response.status_code, message)
