"""Explicit tool registry passed into the runtime."""

from __future__ import annotations

import asyncio
import builtins
import inspect
import json
import threading
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

import pydantic
from loguru import logger

from toolloop.errors import ToolError, ValidationError

ToolHandler = Callable[[Any, "ToolContext"], "str | Awaitable[str]"]


def _shorten_text(text: str, width: int = 30, placeholder: str = "...") -> str:
    """Shorten text to width characters, cutting in the middle of words if needed."""
    if len(text) <= width:
        return text

    available = width - len(placeholder)
    if available <= 0:
        return placeholder

    return text[:available] + placeholder


@dataclass(frozen=True)
class ToolContext:
    """Environment handed to every tool call."""

    workspace: Path
    cancel_event: threading.Event = field(default_factory=threading.Event)
    credentials: Mapping[str, str] = field(default_factory=dict)
    timeout_seconds: float | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "credentials", MappingProxyType(dict(self.credentials)))

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def raise_if_cancelled(self) -> None:
        if self.cancel_event.is_set():
            raise ToolError("Tool call cancelled")

    def for_call(self, timeout_seconds: float | None = None) -> ToolContext:
        """Copy of this context with a fresh cancellation signal and the call's deadline."""
        return ToolContext(workspace=self.workspace, credentials=self.credentials, timeout_seconds=timeout_seconds)


@dataclass(frozen=True)
class ToolDescriptor:
    """Tool metadata and runtime handle."""

    name: str
    description: str
    handler: ToolHandler
    model: type[pydantic.BaseModel] | None = None

    def prepare_args(self, args: Any) -> Any:
        if self.model is None:
            return args
        if not isinstance(args, dict):
            raise ValidationError(f"{self.name} expects a JSON object, got {type(args).__name__}")
        try:
            return self.model.model_validate(args)
        except pydantic.ValidationError as exc:
            raise ValidationError(_format_validation_error(exc)) from exc


class ToolRegistry:
    """Mapping from tool name to handler, scoped to whoever holds the instance."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolDescriptor] = {}

    def register(
        self,
        name: str,
        description: str,
        *,
        model: type[pydantic.BaseModel] | None = None,
    ) -> Callable[[ToolHandler], ToolHandler]:
        """Decorator form of ``add``."""

        def decorator(handler: ToolHandler) -> ToolHandler:
            self.add(ToolDescriptor(name=name, description=description, handler=handler, model=model))
            return handler

        return decorator

    def add(self, descriptor: ToolDescriptor) -> None:
        if descriptor.name in self._tools:
            raise ValueError(f"Duplicate tool name: {descriptor.name}")
        self._tools[descriptor.name] = descriptor

    def has(self, name: str) -> bool:
        return name in self._tools

    def get(self, name: str) -> ToolDescriptor | None:
        return self._tools.get(name)

    def names(self) -> builtins.list[str]:
        return list(self._tools)

    def descriptors(self) -> builtins.list[ToolDescriptor]:
        return list(self._tools.values())

    def docs(self) -> builtins.list[str]:
        return [f"{descriptor.name}: {descriptor.description}" for descriptor in self._tools.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    async def invoke(self, name: str, args: Any, context: ToolContext) -> str:
        """Run one tool and return its output as text.

        Plain functions run in a worker thread so that the caller's deadline
        still applies; the thread itself is told to stop through
        ``context.cancel_event``.
        """
        descriptor = self.get(name)
        if descriptor is None:
            raise KeyError(name)

        params = descriptor.prepare_args(args)
        self._log_tool_call(name, args)
        start = time.monotonic()
        try:
            if inspect.iscoroutinefunction(descriptor.handler):
                result = await descriptor.handler(params, context)
            else:
                result = await asyncio.to_thread(descriptor.handler, params, context)
                if inspect.isawaitable(result):
                    result = await result
        except Exception:
            logger.exception("tool.call.error name={}", name)
            raise
        finally:
            duration = time.monotonic() - start
            logger.info("tool.call.end name={} duration={:.3f}ms", name, duration * 1000)
        return "" if result is None else str(result)

    def _log_tool_call(self, name: str, args: Any) -> None:
        params: list[str] = []
        items = args.items() if isinstance(args, dict) else [("args", args)]
        for key, value in items:
            try:
                rendered = json.dumps(value, ensure_ascii=False)
            except TypeError:
                rendered = repr(value)
            value = _shorten_text(rendered, width=30, placeholder="...")
            if value.startswith('"') and not value.endswith('"'):
                value = value + '"'
            if value.startswith("{") and not value.endswith("}"):
                value = value + "}"
            if value.startswith("[") and not value.endswith("]"):
                value = value + "]"
            params.append(f"{key}={value}")
        logger.info("tool.call.start name={} {{ {} }}", name, ", ".join(params))


def _format_validation_error(exc: pydantic.ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error["loc"]) or "args"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)
