"""toolloop command-line interface."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import typer
from loguru import logger

from toolloop.config import get_settings
from toolloop.core.orchestrator import Orchestrator
from toolloop.core.prompt import DEFAULT_INSTRUCTION
from toolloop.core.types import RunOutcome, RunStatus
from toolloop.errors import ToolloopError
from toolloop.logging_utils import configure_logging
from toolloop.providers import create_provider
from toolloop.tools import build_builtin_registry

EXIT_ERROR = 2
EXIT_MAX_TURNS = 3

app = typer.Typer(name="toolloop", help="Run a tool-calling agent against a local workspace.", add_completion=False)


@app.command()
def run(
    task: list[str] = typer.Argument(..., help="Task for the agent"),  # noqa: B008
    model: str | None = typer.Option(None, "--model", "-m", help="Model name (default depends on provider)"),
    provider: str | None = typer.Option(None, "--provider", "-p", help="Provider: ollama, openai, anthropic"),
    cwd: Path | None = typer.Option(None, "--cwd", help="Working directory"),  # noqa: B008
    yolo: bool = typer.Option(False, "--yolo", "-y", help="Execute detected tool calls without confirmation"),
    openai_key: str | None = typer.Option(None, "--openai-key", help="OpenAI API key"),
    anthropic_key: str | None = typer.Option(None, "--anthropic-key", help="Anthropic API key"),
    max_turns: int | None = typer.Option(None, "--max-turns", min=1, help="Turn budget for this run"),
    instruction_file: Path | None = typer.Option(  # noqa: B008
        None, "--instruction-file", help="File holding the agent instruction preamble"
    ),
) -> None:
    """Run one task through the model/tool loop."""

    workspace = (cwd or Path.cwd()).resolve()
    settings = get_settings(workspace)
    configure_logging(profile="cli", level=settings.log_level)
    task_text = " ".join(task).strip()

    try:
        instruction = _read_instruction(instruction_file)
        llm = create_provider(
            settings,
            model=model,
            provider=provider,
            openai_api_key=openai_key,
            anthropic_api_key=anthropic_key,
        )
        logger.info("Provider: {}, Model: {}", type(llm).__name__, llm.model)
        orchestrator = Orchestrator.from_settings(
            settings,
            provider=llm,
            registry=build_builtin_registry(),
            workspace=workspace,
            instruction=instruction,
            autonomous=yolo,
            max_turns=max_turns,
        )
        outcome = asyncio.run(orchestrator.run(task_text))
    except ToolloopError as exc:
        logger.error("{}: {}", type(exc).__name__, exc)
        raise typer.Exit(EXIT_ERROR) from exc

    _render_outcome(outcome)


@app.command("tools")
def list_tools() -> None:
    """Show the builtin tools."""

    for row in build_builtin_registry().docs():
        typer.echo(row)


def _read_instruction(path: Path | None) -> str:
    if path is None:
        return DEFAULT_INSTRUCTION
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise typer.BadParameter(f"Cannot read instruction file: {exc!s}") from exc


def _render_outcome(outcome: RunOutcome) -> None:
    if outcome.status is RunStatus.AWAITING_CONFIRMATION:
        typer.echo("\n=== Tool Calls Detected ===")
        for call in outcome.pending_calls:
            typer.echo(f"- {call.name}: {json.dumps(call.args, ensure_ascii=False)}")
        typer.echo("\nRun with --yolo to execute automatically")
        return

    if outcome.status is RunStatus.FAILED:
        typer.echo(f"error: {outcome.error}", err=True)
        raise typer.Exit(EXIT_MAX_TURNS if outcome.failure == "max_turns" else EXIT_ERROR)

    typer.echo("\n=== Result ===")
    typer.echo(outcome.text)


if __name__ == "__main__":
    app()
