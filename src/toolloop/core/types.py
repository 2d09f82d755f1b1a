"""Shared core dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

from toolloop.errors import MaxTurnsExceeded, ProviderError

Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class Message:
    """One conversation message."""

    role: Role
    content: str

    def as_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class ToolCall:
    """Tool invocation parsed from assistant text."""

    name: str
    args: Any


@dataclass(frozen=True)
class ToolResult:
    """Outcome of one tool call; exactly one of output/error is set."""

    name: str
    output: str | None = None
    error: str | None = None

    def __post_init__(self) -> None:
        if (self.output is None) == (self.error is None):
            raise ValueError("ToolResult requires exactly one of output or error")

    @classmethod
    def success(cls, name: str, output: str) -> ToolResult:
        return cls(name=name, output=output)

    @classmethod
    def failure(cls, name: str, error: str) -> ToolResult:
        return cls(name=name, error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def line(self) -> str:
        if self.error is not None:
            return f"> {self.name}: ERROR: {self.error}"
        return f"> {self.name}: {self.output}"


@dataclass(frozen=True)
class ProviderResponse:
    """Assistant text plus the provider's own turn-complete flag."""

    content: str
    done: bool


@dataclass
class RunState:
    """Turn counter for one orchestration run."""

    max_turns: int
    turn_index: int = 0

    @property
    def exhausted(self) -> bool:
        return self.turn_index >= self.max_turns

    @property
    def is_last_turn(self) -> bool:
        return self.turn_index == self.max_turns


class RunStatus(str, Enum):
    RUNNING = "running"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    DONE = "done"
    FAILED = "failed"


FailureKind = Literal["provider", "max_turns"]


@dataclass(frozen=True)
class RunOutcome:
    """Result of one orchestration run."""

    status: RunStatus
    text: str
    turns: int
    conversation: list[Message] = field(default_factory=list)
    pending_calls: list[ToolCall] = field(default_factory=list)
    failure: FailureKind | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status in (RunStatus.DONE, RunStatus.AWAITING_CONFIRMATION)

    def raise_for_failure(self) -> None:
        """Raise the exception matching a failed outcome; no-op otherwise."""
        if self.status is not RunStatus.FAILED:
            return
        if self.failure == "max_turns":
            raise MaxTurnsExceeded(self.turns, self.conversation)
        raise ProviderError(self.error or "provider failure")
