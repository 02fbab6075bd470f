"""Tool interface for the memory tools."""

from .base import Tool, ToolResult

__all__ = ["Tool", "ToolResult"]
