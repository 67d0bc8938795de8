"""Base types and definitions for tools."""

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel


class MissingRequiredFieldError(ValueError):
    """Raised when a tool call omits one of its required arguments."""

    def __init__(self, tool_name: str, fields: list[str]):
        self.tool_name = tool_name
        self.fields = fields
        super().__init__(f"Missing required field(s) for {tool_name}: {', '.join(fields)}")


class UnknownToolError(LookupError):
    """Raised when a tool name is not in the catalog."""


@dataclass(frozen=True)
class ToolParameter:
    """One named parameter of a tool."""

    name: str
    type: str
    description: str
    required: bool


@dataclass(frozen=True)
class ToolDescriptor:
    """Definition of a tool the model may invoke."""

    name: str
    description: str
    input_schema_class: type[BaseModel]

    @property
    def parameters(self) -> tuple[ToolParameter, ...]:
        """Parameters derived from the input model's fields."""
        return tuple(
            ToolParameter(
                name=field.alias or name,
                type="string",
                description=field.description or "",
                required=field.is_required(),
            )
            for name, field in self.input_schema_class.model_fields.items()
        )

    @property
    def required_fields(self) -> list[str]:
        return [param.name for param in self.parameters if param.required]

    def parameter_schema(self) -> dict[str, Any]:
        """Plain object schema understood by both model providers."""
        return {
            "type": "object",
            "properties": {
                param.name: {"type": param.type, "description": param.description} for param in self.parameters
            },
            "required": self.required_fields,
        }

    def missing_fields(self, args: dict[str, Any]) -> list[str]:
        """Required arguments that are absent, null or blank."""
        missing = []
        for name in self.required_fields:
            value = args.get(name)
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(name)
        return missing
