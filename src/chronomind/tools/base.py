"""Memory tools exposed to a tool-calling chat model.

A tool describes itself with a function-calling schema and runs on the
raw argument dict the model produced. Bad arguments and failures come
back as a failed ``ToolResult`` so the model can correct its call.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolResult:
    """Outcome of running a tool."""

    success: bool
    output: str
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, output: str, **metadata: Any) -> "ToolResult":
        return cls(success=True, output=output, metadata=metadata)

    @classmethod
    def fail(cls, error: str) -> "ToolResult":
        return cls(success=False, output="", error=error)


class Tool(ABC):
    """A named operation the chat model may call.

    Subclasses set ``name``, ``description`` and the JSON Schema in
    ``parameters``, and implement ``execute``.
    """

    name: ClassVar[str]
    description: ClassVar[str]
    parameters: ClassVar[dict[str, Any]]

    @abstractmethod
    async def execute(self, **kwargs: Any) -> ToolResult:
        """Perform the operation with validated arguments."""

    def schema(self) -> dict[str, Any]:
        """Function-calling schema for this tool."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }

    def check_args(self, args: dict[str, Any]) -> str | None:
        """Return why args do not match the schema, or None if they do."""
        properties = self.parameters.get("properties", {})

        missing = [name for name in self.parameters.get("required", []) if name not in args]
        if missing:
            return f"Missing required argument: {missing[0]}"

        for name, value in args.items():
            prop = properties.get(name)
            if prop is None:
                return f"Unexpected argument: {name}"
            if prop.get("type") == "string" and not isinstance(value, str):
                return f"Argument '{name}' must be a string"
            choices = prop.get("enum")
            if choices is not None and value not in choices:
                return f"Argument '{name}' must be one of: {', '.join(choices)}"

        return None

    async def run(self, args: dict[str, Any]) -> ToolResult:
        """Validate the model's arguments and execute.

        Never raises: invalid arguments and errors from ``execute`` are
        returned as failed results.
        """
        error = self.check_args(args)
        if error is not None:
            return ToolResult.fail(error)

        try:
            return await self.execute(**args)
        except Exception as e:
            logger.warning("Tool %s failed: %s", self.name, e)
            return ToolResult.fail(f"Tool execution failed: {e}")
