"""Tests for the tool catalog and argument normalization."""

import pytest
from conftest import FakeModelClient, text_response

from calendar_assistant.graphs.nodes import TurnNodes, normalize_arguments
from calendar_assistant.graphs.state import TurnState
from calendar_assistant.models.messages import ConversationMessage
from calendar_assistant.tools import MissingRequiredFieldError, ToolCatalog, UnknownToolError, default_catalog
from calendar_assistant.tools.calendar_tools import CREATE_CALENDAR_EVENT, GET_CALENDAR_EVENTS


class TestToolCatalog:
    """Tests for tool lookup and validation."""

    def test_default_catalog_contents(self):
        """Test that exactly the two calendar tools are offered, in order."""
        assert default_catalog.get_tool_names() == ["get_calendar_events", "create_calendar_event"]
        assert default_catalog.has_tool("create_calendar_event")
        assert not default_catalog.has_tool("delete_calendar_event")

    def test_unknown_tool_lookup(self):
        """Test that unknown names raise UnknownToolError."""
        with pytest.raises(UnknownToolError):
            default_catalog.get("delete_calendar_event")

    def test_get_events_schema(self):
        """Test that the optional date parameter is exposed but not required."""
        schema = GET_CALENDAR_EVENTS.parameter_schema()
        assert schema["type"] == "object"
        assert list(schema["properties"]) == ["date"]
        assert schema["properties"]["date"]["type"] == "string"
        assert "YYYY-MM-DD" in schema["properties"]["date"]["description"]
        assert schema["required"] == []

    def test_create_event_schema(self):
        """Test required fields of the create tool."""
        assert CREATE_CALENDAR_EVENT.required_fields == ["summary", "startDateTime", "endDateTime"]
        assert set(CREATE_CALENDAR_EVENT.parameter_schema()["properties"]) == {
            "summary",
            "description",
            "startDateTime",
            "endDateTime",
        }

    def test_validate_accepts_complete_args(self):
        """Test that complete arguments pass validation."""
        default_catalog.validate(
            "create_calendar_event",
            {"summary": "Lunch", "startDateTime": "2025-06-28T12:00:00", "endDateTime": "2025-06-28T13:00:00"},
        )
        default_catalog.validate("get_calendar_events", {})

    def test_validate_reports_missing_fields(self):
        """Test that absent and blank required fields are reported."""
        with pytest.raises(MissingRequiredFieldError) as exc_info:
            default_catalog.validate("create_calendar_event", {"summary": "  ", "startDateTime": "tomorrow"})

        assert exc_info.value.fields == ["summary", "endDateTime"]
        assert "create_calendar_event" in str(exc_info.value)

    def test_custom_catalog(self):
        """Test a catalog restricted to one tool."""
        catalog = ToolCatalog((GET_CALENDAR_EVENTS,))
        assert catalog.get_tool_names() == ["get_calendar_events"]
        assert catalog.descriptors == (GET_CALENDAR_EVENTS,)


class TestNormalizeArguments:
    """Tests for tool argument normalization."""

    def test_date_is_resolved_to_iso_day(self, resolver):
        """Test that relative dates become YYYY-MM-DD."""
        assert normalize_arguments("get_calendar_events", {"date": "tomorrow"}, resolver) == {"date": "2025-06-28"}

    def test_missing_date_untouched(self, resolver):
        """Test that an absent date stays absent."""
        assert normalize_arguments("get_calendar_events", {}, resolver) == {}

    def test_event_times_are_resolved(self, resolver):
        """Test that start and end become ISO timestamps."""
        args = {"summary": "Sync", "startDateTime": "tomorrow at 2pm", "endDateTime": "tomorrow at 3pm"}

        normalized = normalize_arguments("create_calendar_event", args, resolver)

        assert normalized == {
            "summary": "Sync",
            "startDateTime": "2025-06-28T14:00:00+00:00",
            "endDateTime": "2025-06-28T15:00:00+00:00",
        }
        assert args["startDateTime"] == "tomorrow at 2pm"

    def test_pathological_time_does_not_raise(self, resolver):
        """Test that an impossible hour still yields an ISO timestamp for the gateway."""
        args = {"summary": "Sync", "startDateTime": "tomorrow at 99999999:00", "endDateTime": "tomorrow at 3pm"}

        normalized = normalize_arguments("create_calendar_event", args, resolver)

        assert normalized["startDateTime"] == "2025-06-28T00:00:00+00:00"


class TestExecuteTool:
    """Tests for the tool step of a turn."""

    @pytest.mark.asyncio
    async def test_requires_a_function_call(self, gateway, resolver):
        """Test that the tool step refuses a state without a requested call."""
        nodes = TurnNodes(FakeModelClient(), gateway, resolver, default_catalog, on_phase=lambda phase: None)
        state = TurnState(messages=[ConversationMessage.user_text("Hi")], response=text_response("Hello"))

        with pytest.raises(ValueError, match="without a function call"):
            await nodes.execute_tool(state)
