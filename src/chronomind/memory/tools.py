"""Memory tools for explicit fact management."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..tools.base import Tool, ToolResult
from .models import FactCategory

if TYPE_CHECKING:
    from .manager import MemoryManager


class RememberTool(Tool):
    """Tool for saving explicit facts about the user."""

    name = "remember"
    description = (
        "Save a fact about the user for future reference. "
        "Use when the user explicitly asks to remember something."
    )
    parameters = {
        "type": "object",
        "properties": {
            "category": {
                "type": "string",
                "enum": [c.value for c in FactCategory],
                "description": "Kind of fact",
            },
            "key": {
                "type": "string",
                "description": "Brief label (e.g., 'location', 'editor')",
            },
            "value": {
                "type": "string",
                "description": "The fact to remember (e.g., 'Lisbon', 'prefers vim')",
            },
        },
        "required": ["category", "key", "value"],
    }

    def __init__(self, manager: MemoryManager, user_id: str) -> None:
        """Bind the tool to the user the agent is talking to.

        Args:
            manager: The MemoryManager that stores and embeds facts.
            user_id: Whose memory the tool writes to.
        """
        self.manager = manager
        self.user_id = user_id

    async def execute(self, **kwargs: Any) -> ToolResult:
        """Save a fact with full confidence.

        Args:
            category: One of the fact categories.
            key: Brief label of the fact.
            value: The fact content.
        """
        category = FactCategory.parse(kwargs.get("category"))
        key = (kwargs.get("key") or "").strip()
        value = (kwargs.get("value") or "").strip()

        if category is None:
            return ToolResult.fail(f"Unknown category: {kwargs.get('category')!r}")

        if not key or not value:
            return ToolResult.fail("Both 'key' and 'value' are required")

        saved = self.manager.remember_fact(self.user_id, category, key, value)
        return ToolResult.ok(f"Remembered: {saved.key} → {saved.value}", fact_id=saved.id)


class ForgetTool(Tool):
    """Tool for removing facts about the user."""

    name = "forget"
    description = (
        "Remove stored facts about the user by label. "
        "Use when the user asks to forget something."
    )
    parameters = {
        "type": "object",
        "properties": {
            "key": {
                "type": "string",
                "description": "Label of the facts to forget (e.g., 'location')",
            },
        },
        "required": ["key"],
    }

    def __init__(self, manager: MemoryManager, user_id: str) -> None:
        self.manager = manager
        self.user_id = user_id

    async def execute(self, **kwargs: Any) -> ToolResult:
        """Remove every fact with the key, and the embeddings made from them."""
        key = (kwargs.get("key") or "").strip()
        if not key:
            return ToolResult.fail("'key' is required")

        count = self.manager.forget(self.user_id, key)
        if count == 0:
            return ToolResult.ok(f"Nothing was stored about '{key}'", forgotten=0)

        noun = "fact" if count == 1 else "facts"
        return ToolResult.ok(f"Forgot {count} {noun} about '{key}'", forgotten=count)


def memory_tools(manager: MemoryManager, user_id: str) -> dict[str, Tool]:
    """The memory tools bound to one user, keyed by tool name."""
    tools: list[Tool] = [RememberTool(manager, user_id), ForgetTool(manager, user_id)]
    return {tool.name: tool for tool in tools}
