"""Tool-call detection in assistant text.

An invocation is written inline as ``<<tool:NAME {ARGS}>>``. Any number of
invocations may appear in one response; they are returned in textual order.
"""

from __future__ import annotations

import re

from loguru import logger

from toolloop.core.json_repair import StringTracker, repair
from toolloop.core.types import ToolCall
from toolloop.errors import ParseError

START_MARKER = "<<tool:"
END_MARKER = ">>"
TOOL_NAME_RE = re.compile(r"[A-Za-z0-9_]+")
STOP_TOKEN_RE = re.compile(r"<<done>>", re.IGNORECASE)


def scan_tool_calls(text: str) -> list[ToolCall]:
    """Extract tool calls from ``text``; malformed spans are logged and skipped."""

    calls: list[ToolCall] = []
    length = len(text)
    position = 0
    while position < length:
        start = text.find(START_MARKER, position)
        if start == -1:
            break

        name_start = start + len(START_MARKER)
        name_match = TOOL_NAME_RE.match(text, name_start)
        if name_match is None:
            logger.warning("scanner.call.skipped name=- error=missing_name")
            position = name_start
            continue

        name, name_end = name_match.group(0), name_match.end()
        brace = _skip_whitespace(text, name_end)
        if brace >= length or text[brace] != "{":
            logger.warning("scanner.call.skipped name={} error=missing_arguments", name)
            position = name_end
            continue

        args_end = _match_braces(text, brace)
        close = text.find(END_MARKER, args_end)
        if close == -1:
            logger.warning("scanner.call.skipped name={} error=unterminated", name)
            position = args_end
            continue

        try:
            args = repair(text[brace:args_end])
        except ParseError as exc:
            logger.warning("scanner.call.skipped name={} error={}", name, exc)
        else:
            calls.append(ToolCall(name=name, args=args))
        position = close + len(END_MARKER)
    return calls


def contains_stop_token(text: str) -> bool:
    return STOP_TOKEN_RE.search(text) is not None


def _skip_whitespace(text: str, index: int) -> int:
    while index < len(text) and text[index].isspace():
        index += 1
    return index


def _match_braces(text: str, start: int) -> int:
    """Return the index just past the brace that closes ``text[start]``, or the text length."""

    tracker = StringTracker()
    depth = 0
    for index in range(start, len(text)):
        ch = text[index]
        if tracker.consume(ch):
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return index + 1
    return len(text)
