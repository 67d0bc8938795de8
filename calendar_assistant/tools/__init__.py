"""Tools for the calendar assistant."""

from calendar_assistant.tools.base import MissingRequiredFieldError, ToolDescriptor, UnknownToolError
from calendar_assistant.tools.registry import ToolCatalog, default_catalog

__all__ = ["MissingRequiredFieldError", "ToolCatalog", "ToolDescriptor", "UnknownToolError", "default_catalog"]
