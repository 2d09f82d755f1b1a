"""Bounded execution of parsed tool calls."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from loguru import logger

from toolloop.core.types import ToolCall, ToolResult
from toolloop.tools.registry import ToolContext, ToolRegistry

DEFAULT_TOOL_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_OUTPUT_CHARS = 8192


def truncate_output(text: str, max_chars: int = DEFAULT_MAX_OUTPUT_CHARS) -> str:
    if len(text) <= max_chars:
        return text
    return f"{text[:max_chars]}\n...[truncated {len(text) - max_chars} chars]"


class ToolSandbox:
    """Runs a batch of calls one after another, capturing each outcome separately."""

    def __init__(
        self,
        *,
        timeout_seconds: float = DEFAULT_TOOL_TIMEOUT_SECONDS,
        max_output_chars: int = DEFAULT_MAX_OUTPUT_CHARS,
    ) -> None:
        self._timeout_seconds = timeout_seconds
        self._max_output_chars = max_output_chars

    async def execute(
        self,
        calls: Sequence[ToolCall],
        registry: ToolRegistry,
        context: ToolContext,
    ) -> list[ToolResult]:
        return [await self._execute_one(call, registry, context) for call in calls]

    async def _execute_one(self, call: ToolCall, registry: ToolRegistry, context: ToolContext) -> ToolResult:
        if not registry.has(call.name):
            logger.warning("tool.call.unknown name={}", call.name)
            return ToolResult.failure(call.name, f"Unknown tool: {call.name}")

        call_context = context.for_call(self._timeout_seconds)
        try:
            async with asyncio.timeout(self._timeout_seconds) as deadline:
                output = await registry.invoke(call.name, call.args, call_context)
        except TimeoutError as exc:
            if not deadline.expired():
                return ToolResult.failure(call.name, str(exc) or "Tool execution failed")
            call_context.cancel_event.set()
            logger.warning("tool.call.timeout name={} timeout={}s", call.name, self._timeout_seconds)
            return ToolResult.failure(call.name, f"Tool timed out after {self._timeout_seconds:g}s")
        except Exception as exc:
            return ToolResult.failure(call.name, str(exc) or "Tool execution failed")
        return ToolResult.success(call.name, truncate_output(output, self._max_output_chars))
