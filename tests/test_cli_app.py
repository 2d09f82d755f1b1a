import importlib
from collections.abc import Sequence
from pathlib import Path

from typer.testing import CliRunner

from toolloop.core.types import Message, ProviderResponse
from toolloop.errors import ConfigurationError

cli_app_module = importlib.import_module("toolloop.cli")


class DummyProvider:
    name = "dummy"
    model = "dummy-model"

    def __init__(self, *replies: str, done: bool = False) -> None:
        self._replies = list(replies)
        self._done = done
        self.calls = 0

    async def complete(self, messages: Sequence[Message]) -> ProviderResponse:
        self.calls += 1
        reply = self._replies.pop(0) if len(self._replies) > 1 else self._replies[0]
        return ProviderResponse(content=reply, done=self._done)


def _patch_provider(monkeypatch, llm: DummyProvider, seen: dict | None = None) -> None:
    def _fake_create_provider(settings, *, model=None, provider=None, openai_api_key=None, anthropic_api_key=None):
        if seen is not None:
            seen.update(model=model, provider=provider, openai_api_key=openai_api_key)
        return llm

    monkeypatch.setattr(cli_app_module, "create_provider", _fake_create_provider)


def test_run_prints_result(monkeypatch, tmp_path: Path) -> None:
    seen: dict = {}
    _patch_provider(monkeypatch, DummyProvider("All done <<done>>"), seen)

    result = CliRunner().invoke(
        cli_app_module.app,
        ["run", "summarize", "the", "repo", "--cwd", str(tmp_path), "-m", "gpt-4o", "--openai-key", "sk"],
    )

    assert result.exit_code == 0
    assert "=== Result ===" in result.output
    assert "All done <<done>>" in result.output
    assert seen == {"model": "gpt-4o", "provider": None, "openai_api_key": "sk"}


def test_run_without_yolo_lists_pending_calls(monkeypatch, tmp_path: Path) -> None:
    _patch_provider(monkeypatch, DummyProvider('Reading. <<tool:read_file {"path": "a.txt"}>>'))

    result = CliRunner().invoke(cli_app_module.app, ["run", "inspect", "--cwd", str(tmp_path)])

    assert result.exit_code == 0
    assert "=== Tool Calls Detected ===" in result.output
    assert '- read_file: {"path": "a.txt"}' in result.output
    assert "Run with --yolo to execute automatically" in result.output


def test_run_with_yolo_executes_tools(monkeypatch, tmp_path: Path) -> None:
    provider = DummyProvider(
        '<<tool:write_file {"path": "out.txt", "content": "hi"}>>',
        "Wrote it <<done>>",
    )
    _patch_provider(monkeypatch, provider)

    result = CliRunner().invoke(cli_app_module.app, ["run", "write", "--cwd", str(tmp_path), "--yolo"])

    assert result.exit_code == 0
    assert (tmp_path / "out.txt").read_text(encoding="utf-8") == "hi"
    assert provider.calls == 2


def test_run_exhausting_turns_exits_with_three(monkeypatch, tmp_path: Path) -> None:
    provider = DummyProvider("still working")
    _patch_provider(monkeypatch, provider)

    result = CliRunner().invoke(
        cli_app_module.app, ["run", "loop", "--cwd", str(tmp_path), "--max-turns", "2"]
    )

    assert result.exit_code == 3
    assert provider.calls == 2


def test_configuration_error_exits_with_two(monkeypatch, tmp_path: Path) -> None:
    def _fake_create_provider(settings, **kwargs):
        raise ConfigurationError("OPENAI_API_KEY required")

    monkeypatch.setattr(cli_app_module, "create_provider", _fake_create_provider)

    result = CliRunner().invoke(cli_app_module.app, ["run", "task", "--cwd", str(tmp_path), "-p", "openai"])

    assert result.exit_code == 2


def test_tools_command_lists_builtin_docs() -> None:
    result = CliRunner().invoke(cli_app_module.app, ["tools"])

    assert result.exit_code == 0
    assert "read_file: Read file contents. args: {path, lines?}" in result.output
    assert "api_request:" in result.output
