"""Core tool-calling runtime."""

from .json_repair import repair, repair_to_string
from .orchestrator import Orchestrator
from .sandbox import ToolSandbox
from .scanner import scan_tool_calls
from .types import Message, ProviderResponse, RunOutcome, RunState, RunStatus, ToolCall, ToolResult

__all__ = [
    "Message",
    "Orchestrator",
    "ProviderResponse",
    "RunOutcome",
    "RunState",
    "RunStatus",
    "ToolCall",
    "ToolResult",
    "ToolSandbox",
    "repair",
    "repair_to_string",
    "scan_tool_calls",
]
