"""Tests for data models."""

import json
from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from calendar_assistant.models.calendar import CreateEventResult, EventsResult, EventSummary
from calendar_assistant.models.conversation import (
    ConversationRequest,
    ConversationResponse,
    HealthResponse,
    SignInRequest,
)
from calendar_assistant.models.llm import LLMUsage, ModelResponse
from calendar_assistant.models.messages import (
    ConversationHistory,
    ConversationMessage,
    FunctionCall,
    HistoryInvariantError,
    MessagePart,
)


class TestConversationModels:
    """Tests for conversation request/response models."""

    def test_conversation_request_valid(self):
        """Test valid conversation request."""
        request = ConversationRequest(message="Hello")
        assert request.message == "Hello"
        assert request.session_id is None

    def test_conversation_request_from_json(self):
        """Test conversation request parsing from JSON."""
        json_data = '{"message": "What do I have tomorrow?", "session_id": "clhqxrisp0001s67w2qccjhqr"}'
        request = ConversationRequest.model_validate(json.loads(json_data))
        assert request.message == "What do I have tomorrow?"
        assert request.session_id == "clhqxrisp0001s67w2qccjhqr"

    def test_conversation_request_too_long(self):
        """Test that oversized messages are rejected."""
        with pytest.raises(ValidationError):
            ConversationRequest(message="a" * 5000)

    def test_conversation_response_allows_no_reply(self):
        """Test that a blank submission is answered with a null response."""
        response = ConversationResponse(response=None, session_id="test-session")
        assert response.response is None

    def test_health_response_valid(self):
        """Test valid health response."""
        now = datetime.now(UTC)
        response = HealthResponse(status="healthy", timestamp=now, version="1.0.0", signed_in=False)
        assert response.status == "healthy"
        assert response.timestamp == now
        assert response.signed_in is False


class TestMessageModels:
    """Tests for conversation message models."""

    def test_part_requires_exactly_one_variant(self):
        """Test that empty and mixed parts are rejected."""
        with pytest.raises(ValidationError):
            MessagePart()
        with pytest.raises(ValidationError):
            MessagePart(text="hi", function_call=FunctionCall(name="get_calendar_events"))

    def test_wire_shape_uses_camel_case(self):
        """Test the serialized shape of a function call message."""
        message = ConversationMessage.model_function_call(FunctionCall(name="get_calendar_events", args={"date": "x"}))

        assert message.model_dump(by_alias=True, exclude_none=True) == {
            "role": "model",
            "parts": [{"functionCall": {"name": "get_calendar_events", "args": {"date": "x"}}}],
        }

    def test_parse_from_wire_shape(self):
        """Test that camelCase input is accepted."""
        message = ConversationMessage.model_validate(
            {
                "role": "function",
                "parts": [{"functionResponse": {"name": "get_calendar_events", "response": {"events": []}}}],
            }
        )
        assert message.function_response.response == {"events": []}

    def test_invalid_role(self):
        """Test that unknown roles are rejected."""
        with pytest.raises(ValidationError):
            ConversationMessage(role="assistant", parts=[MessagePart(text="hi")])

    def test_function_result_copies_call_id(self):
        """Test that results inherit the id of the call they answer."""
        call = FunctionCall(id="call-1", name="create_calendar_event", args={})
        result = ConversationMessage.function_result(call, {"success": True})
        assert result.function_response.id == "call-1"
        assert result.function_response.name == "create_calendar_event"

    def test_text_property(self):
        """Test that text parts are concatenated."""
        message = ConversationMessage(role="model", parts=[MessagePart(text="Hello "), MessagePart(text="there")])
        assert message.text == "Hello there"
        assert message.function_call is None


class TestConversationHistory:
    """Tests for the call/response pairing rule."""

    def test_valid_pair(self):
        """Test that a call followed by its result is accepted."""
        call = FunctionCall(name="get_calendar_events")
        history = ConversationHistory(
            [
                ConversationMessage.user_text("Today?"),
                ConversationMessage.model_function_call(call),
                ConversationMessage.function_result(call, {"events": []}),
                ConversationMessage.model_text("Nothing today."),
            ]
        )
        assert len(history) == 4

    def test_result_without_call_rejected(self):
        """Test that an orphan function result is refused."""
        history = ConversationHistory([ConversationMessage.user_text("Hi")])
        with pytest.raises(HistoryInvariantError):
            history.append(ConversationMessage.function_result(FunctionCall(name="get_calendar_events"), {}))

    def test_result_for_other_tool_rejected(self):
        """Test that a result must answer the pending call's tool."""
        history = ConversationHistory(
            [
                ConversationMessage.user_text("Hi"),
                ConversationMessage.model_function_call(FunctionCall(name="get_calendar_events")),
            ]
        )
        with pytest.raises(HistoryInvariantError):
            history.append(ConversationMessage.function_result(FunctionCall(name="create_calendar_event"), {}))

    def test_unanswered_call_blocks_other_messages(self):
        """Test that nothing but the result may follow a call."""
        history = ConversationHistory(
            [
                ConversationMessage.user_text("Hi"),
                ConversationMessage.model_function_call(FunctionCall(name="get_calendar_events")),
            ]
        )
        with pytest.raises(HistoryInvariantError):
            history.append(ConversationMessage.user_text("Hello?"))

    def test_snapshot_is_immutable_copy(self):
        """Test that snapshots do not change with the history."""
        history = ConversationHistory([ConversationMessage.user_text("Hi")])
        snapshot = history.snapshot()
        history.clear()
        assert len(snapshot) == 1
        assert len(history) == 0


class TestCalendarModels:
    """Tests for calendar result models."""

    def test_event_summary_from_item(self):
        """Test the trimmed event view."""
        event = EventSummary.from_item(
            {
                "id": "e1",
                "summary": "Standup",
                "start": {"dateTime": "2025-06-27T09:00:00-04:00", "timeZone": "America/New_York"},
                "end": {"dateTime": "2025-06-27T09:15:00-04:00"},
                "attendees": [{"email": "a@example.com"}],
            }
        )
        assert event.start == "2025-06-27T09:00:00-04:00"
        assert event.end == "2025-06-27T09:15:00-04:00"
        assert event.location is None

    def test_results_drop_empty_fields(self):
        """Test the shapes handed back to the model."""
        assert EventsResult(events=[]).to_response() == {"events": []}
        assert EventsResult(error="Failed to fetch calendar events.").to_response() == {
            "error": "Failed to fetch calendar events."
        }
        assert CreateEventResult(success=True, event=EventSummary(id="e1")).to_response() == {
            "success": True,
            "event": {"id": "e1"},
        }


class TestLLMModels:
    """Tests for provider-agnostic model responses."""

    def test_usage_accumulates(self):
        """Test that usage adds up across calls."""
        usage = LLMUsage(input_tokens=10, output_tokens=2, total_tokens=12)
        usage.add(LLMUsage(input_tokens=5, output_tokens=1, total_tokens=6))
        usage.add(None)
        assert usage.total_tokens == 18

    def test_first_function_call(self):
        """Test access to the first requested call."""
        assert ModelResponse(text="hi").first_function_call is None
        calls = [FunctionCall(name="a"), FunctionCall(name="b")]
        assert ModelResponse(function_calls=calls).first_function_call.name == "a"


class TestSignInRequest:
    """Tests for the sign-in request."""

    def test_access_token(self):
        """Test the browser token flow."""
        request = SignInRequest(access_token="ya29.token", timezone="Europe/Paris")
        assert request.refresh_token is None

    def test_refresh_token(self):
        """Test the stored refresh token flow."""
        assert SignInRequest(refresh_token="1//stored").access_token is None

    def test_token_required(self):
        """Test that one of the tokens must be present."""
        with pytest.raises(ValidationError):
            SignInRequest(timezone="Europe/Paris")
