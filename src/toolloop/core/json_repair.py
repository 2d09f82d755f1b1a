"""Lenient JSON parsing for model-written tool arguments.

Models frequently emit near-JSON: single-quoted strings, trailing commas and
unquoted keys. ``repair`` accepts those forms and returns the decoded value.

Recovery runs in two passes and the order matters. The character pass
normalizes quotes and drops trailing commas while tracking string state, and
only then the key pass quotes bare identifiers, because the key pattern relies
on string literals already being double-quoted.

Known gap: a single quote outside a double-quoted string is always rewritten
to a double quote, so apostrophes inside single-quoted values break recovery.
"""

from __future__ import annotations

import json
import re
from typing import Any

from toolloop.errors import ParseError

UNQUOTED_KEY_RE = re.compile(r"([{,]\s*)([A-Za-z_][A-Za-z0-9_]*)\s*:")


class StringTracker:
    """Follow JSON string-literal state one character at a time."""

    def __init__(self) -> None:
        self.in_string = False
        self._escaped = False

    def consume(self, ch: str) -> bool:
        """Advance over ``ch`` and return True when it belongs to a string literal.

        An opening or closing double quote counts as part of the literal. A
        backslash escapes exactly the next character.
        """
        if self.in_string:
            if self._escaped:
                self._escaped = False
            elif ch == "\\":
                self._escaped = True
            elif ch == '"':
                self.in_string = False
            return True
        if ch == '"':
            self.in_string = True
            return True
        return False


def repair(raw: str) -> Any:
    """Decode ``raw`` as JSON, repairing common model mistakes when strict parsing fails."""

    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        pass

    relaxed = quote_bare_keys(normalize_quotes_and_commas(raw))
    try:
        return json.loads(relaxed)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Invalid JSON: {exc}") from exc


def repair_to_string(raw: str) -> str:
    """Return the strict JSON text for ``raw``."""

    return json.dumps(repair(raw), ensure_ascii=False)


def normalize_quotes_and_commas(text: str) -> str:
    """Rewrite single quotes and drop trailing commas outside of string literals."""

    out: list[str] = []
    tracker = StringTracker()
    length = len(text)
    for index, ch in enumerate(text):
        if tracker.consume(ch):
            out.append(ch)
        elif ch == "'":
            out.append('"')
        elif ch == "," and _closes_after(text, index + 1, length):
            continue
        else:
            out.append(ch)
    return "".join(out)


def quote_bare_keys(text: str) -> str:
    """Wrap identifiers used as object keys in double quotes."""

    return UNQUOTED_KEY_RE.sub(r'\1"\2":', text)


def _closes_after(text: str, start: int, length: int) -> bool:
    index = start
    while index < length and text[index].isspace():
        index += 1
    return index < length and text[index] in "}]"
