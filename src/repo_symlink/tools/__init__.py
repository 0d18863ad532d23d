"""Tool interfaces and registrations."""

from .registry import ToolDispatchError, ToolHandler, ToolRegistry, ToolSpec

__all__ = ["ToolDispatchError", "ToolHandler", "ToolRegistry", "ToolSpec"]
