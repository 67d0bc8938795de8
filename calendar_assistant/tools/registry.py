"""Catalog of the tools offered to the model."""

from typing import Any

from calendar_assistant.tools.base import MissingRequiredFieldError, ToolDescriptor, UnknownToolError
from calendar_assistant.tools.calendar_tools import CREATE_CALENDAR_EVENT, GET_CALENDAR_EVENTS


class ToolCatalog:
    """Static, read-only set of tool descriptors."""

    def __init__(self, tools: tuple[ToolDescriptor, ...] = (GET_CALENDAR_EVENTS, CREATE_CALENDAR_EVENT)):
        self._tools: dict[str, ToolDescriptor] = {tool.name: tool for tool in tools}

    @property
    def descriptors(self) -> tuple[ToolDescriptor, ...]:
        return tuple(self._tools.values())

    def get(self, name: str) -> ToolDescriptor:
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownToolError(f"Unknown tool: {name}") from None

    def has_tool(self, name: str) -> bool:
        """Check if a tool is registered."""
        return name in self._tools

    def get_tool_names(self) -> list[str]:
        """Get list of all registered tool names."""
        return list(self._tools.keys())

    def validate(self, name: str, args: dict[str, Any]) -> None:
        """Check that every required argument is present.

        Raises:
            UnknownToolError: If the tool is not registered
            MissingRequiredFieldError: If required arguments are missing
        """
        missing = self.get(name).missing_fields(args)
        if missing:
            raise MissingRequiredFieldError(name, missing)


default_catalog = ToolCatalog()
