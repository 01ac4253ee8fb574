"""MCP server for mili project automation.

Primary interface for agents. Exposes task tracking, git automation,
project inspection, Azure DevOps pull requests and document creation as
MCP tools over stdio.

Usage:
    mili-mcp                       # Log to ~/.mili/mili.log (or $MILI_LOG_DIR); reads ./.env
    mili-mcp --log-dir /tmp/mili   # Explicit log directory
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import replace
from pathlib import Path
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import (
    CallToolResult,
    GetPromptResult,
    Prompt,
    PromptArgument,
    PromptMessage,
    TextContent,
    Tool,
)

from mili_mcp.config import ServerConfig, load_env_file
from mili_mcp.logging import setup_logging, tool_extra
from mili_mcp.mcp_tools import documents, git, projects, pull_requests, tasks
from mili_mcp.mcp_tools.common import ToolContext, _error
from mili_mcp.task_store import TaskError, TaskStore

# ---------------------------------------------------------------------------
# Server setup
# ---------------------------------------------------------------------------

server = Server("mili")
_context: ToolContext | None = None
_logger: logging.Logger | None = None
_request_context: ContextVar[ToolContext | None] = ContextVar("mili_request_context", default=None)


def _get_context() -> ToolContext:
    active = _request_context.get() or _context
    if active is None:
        msg = "Tool context not initialized"
        raise RuntimeError(msg)
    return active


@contextmanager
def use_context(context: ToolContext) -> Iterator[ToolContext]:
    """Run tool calls in this task against *context* instead of the global one."""
    token = _request_context.set(context)
    try:
        yield context
    finally:
        _request_context.reset(token)


def _collect_tools() -> tuple[list[Tool], dict[str, Callable[..., Any]]]:
    all_tools: list[Tool] = []
    all_handlers: dict[str, Callable[..., Any]] = {}
    for module in (tasks, git, projects, pull_requests, documents):
        module_tools, module_handlers = module.register()
        all_tools.extend(module_tools)
        all_handlers.update(module_handlers)
    return all_tools, all_handlers


_TOOLS, _HANDLERS = _collect_tools()


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

WORKFLOW_PROMPT = "mili-task-workflow"

_WORKFLOW_TEXT = """\
# Mili task workflow

Each project keeps at most one active task in `.mili/active_task.json`.
Use `mili_manage_task` to keep it current so work survives agent restarts.

1. At session start call `mili_manage_task` with `action: "read"`.
   - If a task is active, continue it; its `history` says where you left off.
   - If none is active, call `action: "start"` with `taskName`, `status` and `plan`.
     Starting replaces any active task without archiving it.
2. After each meaningful step call `action: "update"` with `notes`
   (appended to history) and, when they change, `status` or `plan`.
3. When done call `action: "complete"`. The task is archived to
   `.mili/task_history.jsonl` and the active record is removed.

## Other tools
- **mili_get_structure / mili_search_project**: inspect a project tree
- **GIT_RUN_COMMAND**: read-only git inspection (`log`, `diff`, `show`)
- **GIT_PUSH_FEATURE**: branch, commit and push (preview first)
- **mili_create_pr**: open an Azure DevOps pull request (preview first)
- **CREATE_NEW_DOCUMENT**: store an HTML document
"""


@server.list_prompts()  # type: ignore[untyped-decorator,no-untyped-call]
async def list_prompts() -> list[Prompt]:
    return [
        Prompt(
            name=WORKFLOW_PROMPT,
            description="How to track work with mili_manage_task. Use at session start.",
            arguments=[
                PromptArgument(
                    name="project_path",
                    description="Project root; when given, the current active task is included",
                    required=False,
                ),
            ],
        ),
    ]


@server.get_prompt()  # type: ignore[untyped-decorator,no-untyped-call]
async def get_workflow_prompt(name: str, arguments: dict[str, str] | None = None) -> GetPromptResult:
    if name != WORKFLOW_PROMPT:
        msg = f"Unknown prompt: {name}"
        raise ValueError(msg)
    messages: list[PromptMessage] = [
        PromptMessage(role="user", content=TextContent(type="text", text=_WORKFLOW_TEXT)),
    ]
    project_path = (arguments or {}).get("project_path")
    if project_path:
        try:
            record = TaskStore(project_path).read_active()
        except TaskError as exc:
            text = f"Active task could not be read: {exc}"
        else:
            if record is None:
                text = "No active task in this project."
            else:
                text = f"Active task: **{record['name']}** ({record['status']})\n\nPlan:\n{record.get('plan') or '(none)'}"
        messages.append(PromptMessage(role="user", content=TextContent(type="text", text=text)))
    return GetPromptResult(description="Mili task workflow guide", messages=messages)


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


@server.list_tools()  # type: ignore[untyped-decorator,no-untyped-call]
async def list_tools() -> list[Tool]:
    return list(_TOOLS)


@server.call_tool()  # type: ignore[untyped-decorator]
async def call_tool(name: str, arguments: dict[str, Any]) -> CallToolResult:
    handler = _HANDLERS.get(name)
    if handler is None:
        return _error(f"Unknown tool: {name}", "unknown_tool")

    t0 = time.monotonic()
    try:
        result: CallToolResult = await handler(arguments or {})
    except Exception as exc:
        if _logger:
            _logger.error("tool_error", extra=tool_extra(name, arguments or {}), exc_info=True)
        return _error(f"Unexpected error in {name}: {exc}", "internal_error")

    duration_ms = round((time.monotonic() - t0) * 1000, 1)
    if _logger:
        error = None
        if result.isError:
            error = result.content[0].text if result.content else ""  # type: ignore[union-attr]
        _logger.info("tool_call", extra=tool_extra(name, arguments or {}, duration_ms=duration_ms, error=error))
    return result


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


async def _run(config: ServerConfig) -> None:
    global _context, _logger

    _logger = setup_logging(config.log_dir)
    _context = ToolContext.from_config(config)
    database = f"{config.db_host}:{config.db_port}/{config.db_name}"
    _logger.info("mcp_server_start", extra=tool_extra("server", {"tools": len(_TOOLS), "database": database}))

    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


def main() -> None:
    parser = argparse.ArgumentParser(description="Mili MCP server")
    parser.add_argument("--log-dir", type=Path, default=None, help="Directory for mili.log (default: $MILI_LOG_DIR or ~/.mili)")
    args = parser.parse_args()

    load_env_file()
    config = ServerConfig.from_env()
    if args.log_dir is not None:
        config = replace(config, log_dir=args.log_dir)
    asyncio.run(_run(config))


if __name__ == "__main__":
    main()
