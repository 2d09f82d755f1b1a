"""Built-in tool definitions."""

from __future__ import annotations

import asyncio
import contextlib
import fnmatch
import os
import re
import shutil
import signal
from pathlib import Path
from typing import Any, Literal

import httpx
from pydantic import BaseModel, Field

from toolloop.errors import ToolError, ValidationError
from toolloop.tools.registry import ToolContext, ToolRegistry

MAX_LIST_ENTRIES = 500
MAX_SEARCH_MATCHES = 100
DEFAULT_COMMAND_TIMEOUT_SECONDS = 30
API_REQUEST_TIMEOUT_SECONDS = 60.0
ERROR_BODY_PREVIEW_CHARS = 200
SKIPPED_DIRS = frozenset({".git", "node_modules", "__pycache__", ".venv", "dist", "build"})


class ToolNameInput(BaseModel):
    tool: str | None = Field(default=None, description="Tool name")


class ListFilesInput(BaseModel):
    path: str = Field(default=".", description="Directory relative to the workspace")
    pattern: str | None = Field(default=None, description="Glob pattern applied to file names")


class ReadFileInput(BaseModel):
    path: str = Field(..., description="File path")
    lines: int | None = Field(default=None, ge=1, description="Read only the first N lines")


class SearchCodeInput(BaseModel):
    pattern: str = Field(..., description="Regex pattern")
    path: str = Field(default=".", description="Base path")
    extension: str | None = Field(default=None, description="Only files with this extension, e.g. '.ts'")


class WriteFileInput(BaseModel):
    path: str = Field(..., description="File path")
    content: str = Field(..., description="File content")


class RunCommandInput(BaseModel):
    command: str = Field(..., description="Shell command")
    timeout: int = Field(default=DEFAULT_COMMAND_TIMEOUT_SECONDS, ge=1, description="Timeout in seconds")


class ApiRequestInput(BaseModel):
    endpoint: str = Field(..., description="Path on the analytics backend, e.g. /api/projects")
    method: Literal["GET", "POST", "PUT", "PATCH", "DELETE"] = Field(default="GET")
    body: Any = Field(default=None, description="JSON body for write methods")


def resolve_path(context: ToolContext, raw_path: str) -> Path:
    """Resolve ``raw_path`` inside the workspace; escaping it is rejected."""

    base = context.workspace.resolve()
    resolved = (base / raw_path).resolve()
    if resolved != base and base not in resolved.parents:
        raise ValidationError(f"Path escapes working directory: {raw_path}")
    return resolved


def register_builtin_tools(
    registry: ToolRegistry,
    *,
    http_transport: httpx.BaseTransport | None = None,
) -> None:
    """Register the general-purpose tool family."""

    @registry.register(name="help", description="Get tool documentation. args: {tool?}", model=ToolNameInput)
    def help_(params: ToolNameInput, context: ToolContext) -> str:
        if params.tool is None:
            return "\n".join(registry.docs())
        descriptor = registry.get(params.tool)
        if descriptor is None:
            raise ToolError(f"Unknown tool: {params.tool}")
        return f"{descriptor.name}: {descriptor.description}"

    @registry.register(
        name="list_files",
        description="List files in directory. args: {path?, pattern?}",
        model=ListFilesInput,
    )
    def list_files(params: ListFilesInput, context: ToolContext) -> str:
        root = resolve_path(context, params.path)
        if not root.is_dir():
            raise ToolError(f"Not a directory: {params.path}")
        entries: list[str] = []
        for file_path in _walk_files(root, context):
            if params.pattern and not fnmatch.fnmatch(file_path.name, params.pattern):
                continue
            entries.append(file_path.relative_to(root).as_posix())
            if len(entries) >= MAX_LIST_ENTRIES:
                entries.append(f"... (limited to {MAX_LIST_ENTRIES} entries)")
                break
        return "\n".join(entries) if entries else "(empty)"

    @registry.register(
        name="read_file",
        description="Read file contents. args: {path, lines?}",
        model=ReadFileInput,
    )
    def read_file(params: ReadFileInput, context: ToolContext) -> str:
        file_path = resolve_path(context, params.path)
        try:
            content = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeError) as exc:
            raise ToolError(f"Cannot read {params.path}: {exc!s}") from exc
        if params.lines is None:
            return content
        return "\n".join(content.splitlines()[: params.lines])

    @registry.register(
        name="search_code",
        description="Search for pattern in code. args: {pattern, path?, extension?}",
        model=SearchCodeInput,
    )
    def search_code(params: SearchCodeInput, context: ToolContext) -> str:
        try:
            regex = re.compile(params.pattern)
        except re.error as exc:
            raise ValidationError(f"Invalid pattern: {exc!s}") from exc
        root = resolve_path(context, params.path)
        matches: list[str] = []
        for file_path in _walk_files(root, context):
            if params.extension and not file_path.name.endswith(params.extension):
                continue
            try:
                lines = file_path.read_text(encoding="utf-8").splitlines()
            except (OSError, UnicodeError):
                continue
            for lineno, line in enumerate(lines, start=1):
                if regex.search(line):
                    matches.append(f"{file_path.relative_to(root).as_posix()}:{lineno}: {line.strip()}")
                    if len(matches) >= MAX_SEARCH_MATCHES:
                        return "\n".join(matches)
        return "\n".join(matches) if matches else "No matches"

    @registry.register(
        name="write_file",
        description="Write content to a file. args: {path, content}",
        model=WriteFileInput,
    )
    def write_file(params: WriteFileInput, context: ToolContext) -> str:
        file_path = resolve_path(context, params.path)
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_text(params.content, encoding="utf-8")
        except OSError as exc:
            raise ToolError(f"Cannot write {params.path}: {exc!s}") from exc
        return f"Wrote {len(params.content)} chars to {params.path}"

    @registry.register(
        name="run_command",
        description="Run a shell command in the working directory. args: {command, timeout?}",
        model=RunCommandInput,
    )
    async def run_command(params: RunCommandInput, context: ToolContext) -> str:
        timeout = params.timeout
        if context.timeout_seconds is not None:
            timeout = min(timeout, context.timeout_seconds)
        bash_executable = shutil.which("bash") or "bash"
        try:
            process = await asyncio.create_subprocess_exec(
                bash_executable,
                "-lc",
                params.command,
                cwd=str(context.workspace),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as exc:
            raise ToolError(f"Command failed: {exc!s}") from exc

        try:
            async with asyncio.timeout(timeout):
                stdout_bytes, stderr_bytes = await process.communicate()
        except TimeoutError as exc:
            raise ToolError(f"Command timed out after {timeout:g}s") from exc
        finally:
            await _kill_process_group(process)

        stdout_text = (stdout_bytes or b"").decode("utf-8", errors="replace")
        stderr_text = (stderr_bytes or b"").decode("utf-8", errors="replace")
        output = (stdout_text + stderr_text).strip()
        if process.returncode != 0:
            raise ToolError(f"exit={process.returncode}\n{output or '(empty)'}")
        return output or "(empty)"

    @registry.register(
        name="api_request",
        description="Call the analytics backend API. args: {endpoint, method?, body?}",
        model=ApiRequestInput,
    )
    def api_request(params: ApiRequestInput, context: ToolContext) -> str:
        base_url = context.credentials.get("api_base_url")
        if not base_url:
            raise ValidationError("api_base_url is not configured")
        headers = {"Content-Type": "application/json"}
        if token := context.credentials.get("auth_token"):
            headers["Authorization"] = f"Bearer {token}"

        context.raise_if_cancelled()
        with httpx.Client(transport=http_transport, timeout=API_REQUEST_TIMEOUT_SECONDS) as client:
            try:
                response = client.request(
                    params.method,
                    f"{base_url.rstrip('/')}{params.endpoint}",
                    headers=headers,
                    json=params.body if params.method != "GET" else None,
                )
            except httpx.HTTPError as exc:
                raise ToolError(f"API request failed: {exc!s}") from exc
        if not response.is_success:
            raise ToolError(f"API error {response.status_code}: {response.text[:ERROR_BODY_PREVIEW_CHARS]}")
        return response.text


def _walk_files(root: Path, context: ToolContext) -> list[Path]:
    files: list[Path] = []
    for current, dirnames, filenames in os.walk(root):
        context.raise_if_cancelled()
        dirnames[:] = sorted(name for name in dirnames if name not in SKIPPED_DIRS)
        files.extend(Path(current) / name for name in sorted(filenames))
    return files


async def _kill_process_group(process: asyncio.subprocess.Process) -> None:
    """Kill the shell and everything it started unless it already exited."""

    if process.returncode is not None:
        return
    with contextlib.suppress(ProcessLookupError):
        os.killpg(process.pid, signal.SIGKILL)
    await process.wait()
