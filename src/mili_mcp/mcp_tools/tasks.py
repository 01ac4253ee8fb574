"""MCP tool for the per-project active task (``mili_manage_task``)."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

from mcp.types import CallToolResult, Tool

from mili_mcp.mcp_tools.common import _error, _text, _validate_str
from mili_mcp.tasks import VALID_ACTIONS, TaskController, TaskOutcome

_OPTIONAL_FIELDS = ("taskName", "status", "plan", "notes")


def register() -> tuple[list[Tool], dict[str, Callable[..., Any]]]:
    """Return (tool_definitions, handler_map) for task tools."""
    tools = [
        Tool(
            name="mili_manage_task",
            description=(
                "Manage the current active task state to persist context across agent restarts. "
                "Saves state to .mili/active_task.json in the project root; completed tasks are "
                "archived to .mili/task_history.jsonl. 'start' replaces any active task without archiving it."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "projectPath": {
                        "type": "string",
                        "description": "The root directory of the project where .mili folder will be created",
                    },
                    "action": {"type": "string", "enum": list(VALID_ACTIONS), "description": "Action to perform"},
                    "taskName": {"type": "string", "description": "Name of the task (used by start and update)"},
                    "status": {"type": "string", "description": "Current status of the task"},
                    "plan": {"type": "string", "description": "The plan or steps for the task"},
                    "notes": {
                        "type": "string",
                        "description": "Progress note to append to history (update only)",
                    },
                },
                "required": ["projectPath", "action"],
            },
        ),
    ]

    handlers: dict[str, Callable[..., Any]] = {
        "mili_manage_task": _handle_manage_task,
    }

    return tools, handlers


def outcome_result(outcome: TaskOutcome, action: str) -> CallToolResult:
    """Convert a controller outcome into a tool result."""
    if outcome.kind == "error":
        return _error(outcome.message, outcome.code or "task_error")
    if outcome.kind == "info":
        return _text({"active": False, "message": outcome.message})
    if action == "read":
        return _text(outcome.task)
    return _text({"status": "ok", "message": outcome.message, "task": outcome.task})


async def _handle_manage_task(arguments: dict[str, Any]) -> CallToolResult:
    project_path, err = _validate_str(arguments, "projectPath")
    if err:
        return err
    assert project_path is not None
    if not Path(project_path).is_absolute():
        return _error(f"projectPath must be an absolute path: {project_path}", "invalid_input")

    action = arguments.get("action")
    if action not in VALID_ACTIONS:
        return _error(f"action must be one of: {', '.join(VALID_ACTIONS)}", "invalid_input")

    fields: dict[str, str | None] = {}
    for key in _OPTIONAL_FIELDS:
        value, err = _validate_str(arguments, key, required=False)
        if err:
            return err
        fields[key] = value

    controller = TaskController.for_project(project_path)
    outcome = controller.run(
        action,
        name=fields["taskName"],
        status=fields["status"],
        plan=fields["plan"],
        notes=fields["notes"],
    )
    return outcome_result(outcome, action)
