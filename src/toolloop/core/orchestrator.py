"""Bounded-turn conversation loop."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from pathlib import Path

from loguru import logger

from toolloop.config import Settings
from toolloop.core.prompt import DEFAULT_INSTRUCTION, build_system_prompt
from toolloop.core.sandbox import ToolSandbox
from toolloop.core.scanner import contains_stop_token, scan_tool_calls
from toolloop.core.types import (
    FailureKind,
    Message,
    ProviderResponse,
    RunOutcome,
    RunState,
    RunStatus,
    ToolCall,
    ToolResult,
)
from toolloop.errors import ProviderError, ValidationError
from toolloop.providers.base import Provider
from toolloop.tools.registry import ToolContext, ToolRegistry

TOOL_OUTPUT_HEADER = "[TOOL OUTPUT]"
DEFAULT_MAX_TURNS = 15
DEFAULT_MODEL_TIMEOUT_SECONDS = 120.0


def render_tool_results(results: Sequence[ToolResult]) -> str:
    lines = "\n".join(result.line() for result in results)
    return f"{TOOL_OUTPUT_HEADER}\n{lines}"


class Orchestrator:
    """Drives provider turns and tool execution until the run completes or runs out of turns.

    One instance may serve many runs; each call to ``run`` owns a fresh
    conversation, so nothing is shared between runs.
    """

    def __init__(
        self,
        *,
        provider: Provider,
        registry: ToolRegistry,
        workspace: Path | str | None = None,
        instruction: str = DEFAULT_INSTRUCTION,
        autonomous: bool = False,
        max_turns: int = DEFAULT_MAX_TURNS,
        sandbox: ToolSandbox | None = None,
        credentials: Mapping[str, str] | None = None,
        model_timeout_seconds: float | None = DEFAULT_MODEL_TIMEOUT_SECONDS,
        finalize_on_last_turn: bool = False,
    ) -> None:
        if max_turns < 1:
            raise ValidationError("max_turns must be at least 1")
        self._provider = provider
        self._registry = registry
        self._workspace = Path.cwd() if workspace is None else Path(workspace)
        self._instruction = instruction
        self._autonomous = autonomous
        self._max_turns = max_turns
        self._sandbox = sandbox or ToolSandbox()
        self._credentials = dict(credentials or {})
        self._model_timeout_seconds = model_timeout_seconds
        self._finalize_on_last_turn = finalize_on_last_turn

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        provider: Provider,
        registry: ToolRegistry,
        workspace: Path | str | None = None,
        instruction: str = DEFAULT_INSTRUCTION,
        autonomous: bool = False,
        max_turns: int | None = None,
    ) -> Orchestrator:
        return cls(
            provider=provider,
            registry=registry,
            workspace=workspace,
            instruction=instruction,
            autonomous=autonomous,
            max_turns=max_turns or settings.max_turns,
            sandbox=ToolSandbox(
                timeout_seconds=settings.tool_timeout_seconds,
                max_output_chars=settings.max_tool_output_chars,
            ),
            credentials=settings.tool_credentials(),
            model_timeout_seconds=settings.model_timeout_seconds,
            finalize_on_last_turn=settings.finalize_on_last_turn,
        )

    @property
    def autonomous(self) -> bool:
        return self._autonomous

    def system_prompt(self) -> str:
        return build_system_prompt(self._instruction, self._registry)

    async def run(self, task: str) -> RunOutcome:
        if not isinstance(task, str) or not task.strip():
            raise ValidationError("task must be a non-empty string")

        state = RunState(max_turns=self._max_turns)
        conversation = [
            Message(role="system", content=self.system_prompt()),
            Message(role="user", content=task.strip()),
        ]
        context = ToolContext(workspace=self._workspace, credentials=self._credentials)
        logger.info(
            "orchestrator.run.start provider={} model={} autonomous={} max_turns={}",
            self._provider.name,
            self._provider.model,
            self._autonomous,
            self._max_turns,
        )

        while not state.exhausted:
            state.turn_index += 1
            logger.debug("orchestrator.turn.start turn={} max_turns={}", state.turn_index, state.max_turns)
            try:
                response = await self._complete(conversation)
            except ProviderError as exc:
                logger.error("orchestrator.run.failed turn={} error={}", state.turn_index, exc)
                return self._failed(state, conversation, "provider", str(exc))

            text = response.content
            conversation.append(Message(role="assistant", content=text))
            logger.debug("orchestrator.turn.response turn={} chars={}", state.turn_index, len(text))
            if not text.strip():
                logger.info("orchestrator.turn.empty turn={}", state.turn_index)
                continue

            calls = scan_tool_calls(text)
            if calls:
                logger.info("orchestrator.turn.calls turn={} count={}", state.turn_index, len(calls))
                if not self._autonomous:
                    return self._awaiting_confirmation(state, conversation, text, calls)
                results = await self._sandbox.execute(calls, self._registry, context)
                conversation.append(Message(role="user", content=render_tool_results(results)))
                continue

            if self._is_complete(response, state):
                logger.info("orchestrator.run.done turn={}", state.turn_index)
                return RunOutcome(
                    status=RunStatus.DONE,
                    text=text,
                    turns=state.turn_index,
                    conversation=conversation,
                )

        logger.warning("orchestrator.run.failed error=max_turns max_turns={}", state.max_turns)
        return self._failed(
            state,
            conversation,
            "max_turns",
            f"Max turns reached without completion ({state.max_turns})",
        )

    async def _complete(self, conversation: list[Message]) -> ProviderResponse:
        try:
            async with asyncio.timeout(self._model_timeout_seconds):
                return await self._provider.complete(list(conversation))
        except TimeoutError as exc:
            raise ProviderError(f"model_timeout: no response within {self._model_timeout_seconds}s") from exc

    def _is_complete(self, response: ProviderResponse, state: RunState) -> bool:
        if response.done or contains_stop_token(response.content):
            return True
        return self._finalize_on_last_turn and state.is_last_turn

    def _awaiting_confirmation(
        self,
        state: RunState,
        conversation: list[Message],
        text: str,
        calls: list[ToolCall],
    ) -> RunOutcome:
        for call in calls:
            logger.info("orchestrator.call.pending name={} args={}", call.name, call.args)
        return RunOutcome(
            status=RunStatus.AWAITING_CONFIRMATION,
            text=text,
            turns=state.turn_index,
            conversation=conversation,
            pending_calls=calls,
        )

    @staticmethod
    def _failed(state: RunState, conversation: list[Message], failure: FailureKind, error: str) -> RunOutcome:
        return RunOutcome(
            status=RunStatus.FAILED,
            text=conversation[-1].content if conversation[-1].role == "assistant" else "",
            turns=state.turn_index,
            conversation=conversation,
            failure=failure,
            error=error,
        )
