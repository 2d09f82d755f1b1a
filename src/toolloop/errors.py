"""Application-level exception types for toolloop."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from toolloop.core.types import Message


class ToolloopError(Exception):
    """Base exception for toolloop."""


class ConfigurationError(ToolloopError):
    """Raised when configuration is missing or inconsistent, before any network call."""


class ValidationError(ToolloopError):
    """Raised when a required argument to the orchestrator or a tool is missing or invalid."""


class ParseError(ToolloopError):
    """Raised when near-JSON text cannot be recovered into a JSON value."""


class ProviderError(ToolloopError):
    """Raised on transport failure, non-success status, or malformed provider response."""


class ToolError(ToolloopError):
    """Raised by a tool for its own failure, including a timeout."""


class MaxTurnsExceeded(ToolloopError):
    """Raised when a run exhausts its turn budget without completing."""

    def __init__(self, max_turns: int, conversation: list[Message] | None = None) -> None:
        super().__init__(f"Max turns reached without completion ({max_turns})")
        self.max_turns = max_turns
        self.conversation = list(conversation or [])
