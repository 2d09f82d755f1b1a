"""Tools package for toolloop."""

from .builtin import register_builtin_tools
from .registry import ToolContext, ToolDescriptor, ToolRegistry


def build_builtin_registry() -> ToolRegistry:
    """Build a registry holding the builtin tool family."""
    registry = ToolRegistry()
    register_builtin_tools(registry)
    return registry


__all__ = [
    "ToolContext",
    "ToolDescriptor",
    "ToolRegistry",
    "build_builtin_registry",
    "register_builtin_tools",
]
