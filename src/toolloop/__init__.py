"""toolloop - LLM tool-calling runtime."""

from .core import Orchestrator, RunOutcome, RunStatus, ToolSandbox, repair, scan_tool_calls
from .providers import create_provider
from .tools import ToolContext, ToolRegistry

__version__ = "0.1.0"

__all__ = [
    "Orchestrator",
    "RunOutcome",
    "RunStatus",
    "ToolContext",
    "ToolRegistry",
    "ToolSandbox",
    "create_provider",
    "repair",
    "scan_tool_calls",
]
