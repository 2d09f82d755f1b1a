"""System prompt assembly."""

from __future__ import annotations

from toolloop.core.scanner import END_MARKER, START_MARKER
from toolloop.tools.registry import ToolRegistry

DEFAULT_INSTRUCTION = """You are an autonomous assistant that completes the user's task with the tools listed below.

Work step by step: gather evidence with tools before drawing conclusions, and keep answers specific.
When the task is complete, give the final answer in plain language."""


def render_tool_instructions(registry: ToolRegistry) -> str:
    """Render the invocation syntax and the tool list for the model."""

    names = ", ".join(registry.names()) or "(none)"
    bullets = "\n".join(f"- **{descriptor.name}** - {descriptor.description}" for descriptor in registry.descriptors())
    return (
        "When you need to use a tool, emit the exact syntax:\n"
        f'{START_MARKER}tool_name {{"parameter": "value"}}{END_MARKER}\n'
        "\n"
        f"Available tools: {names}\n"
        "\n"
        "Quick reference:\n"
        f"{bullets}\n"
        "\n"
        "Remember:\n"
        "- Use strict JSON in tool calls (no trailing commas, quoted keys)\n"
        "- You may emit several tool calls in one reply; they run in order\n"
        "- Tool results come back in the next message as '> name: output' lines\n"
        "- When you are finished, reply without tool calls and end with <<done>>"
    )


def build_system_prompt(instruction: str, registry: ToolRegistry) -> str:
    blocks = [instruction.strip(), render_tool_instructions(registry)]
    return "\n\n".join(block for block in blocks if block)
