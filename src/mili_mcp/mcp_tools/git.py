"""MCP tools for git automation: feature-branch push and ad-hoc git commands."""

from __future__ import annotations

import shlex
from collections.abc import Callable
from typing import Any

from mcp.types import CallToolResult, Tool

from mili_mcp.git_ops import GitCommandError, feature_branch, parse_command_args, push_feature, push_feature_plan
from mili_mcp.mcp_tools.common import _error, _text, _validate_bool, _validate_dir, _validate_str
from mili_mcp.types.api import PreviewResponse
from mili_mcp.validation import sanitize_branch_name


def register() -> tuple[list[Tool], dict[str, Callable[..., Any]]]:
    """Return (tool_definitions, handler_map) for git tools."""
    tools = [
        Tool(
            name="GIT_PUSH_FEATURE",
            description=(
                "Automate git flow: pull the base branch, checkout a new feature branch, add, commit, and push. "
                "Defaults to preview mode."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "projectPath": {"type": "string", "description": "The root directory of the project"},
                    "branchName": {
                        "type": "string",
                        "description": "The name of the feature branch (suffix only, e.g. 'tkLoginFix')",
                    },
                    "commitMessage": {"type": "string", "description": "The commit message"},
                    "preview": {
                        "type": "boolean",
                        "default": True,
                        "description": (
                            "If true (default), returns the commands that would be executed without running them. "
                            "Set to false to execute."
                        ),
                    },
                },
                "required": ["projectPath", "branchName", "commitMessage"],
            },
        ),
        Tool(
            name="GIT_RUN_COMMAND",
            description="Run a custom git command to inspect changes or history (e.g., 'show HEAD', 'diff', 'log').",
            inputSchema={
                "type": "object",
                "properties": {
                    "projectPath": {"type": "string", "description": "The root directory of the project"},
                    "commandArgs": {
                        "type": "string",
                        "description": (
                            "The git command arguments (e.g. 'show --stat', 'diff HEAD^ HEAD'). "
                            "Do not include 'git' at the start."
                        ),
                    },
                },
                "required": ["projectPath", "commandArgs"],
            },
        ),
    ]

    handlers: dict[str, Callable[..., Any]] = {
        "GIT_PUSH_FEATURE": _handle_push_feature,
        "GIT_RUN_COMMAND": _handle_run_command,
    }

    return tools, handlers


def _git_error(exc: GitCommandError) -> CallToolResult:
    return _error(str(exc), "git_error", stdout=exc.stdout, stderr=exc.stderr)


async def _handle_push_feature(arguments: dict[str, Any]) -> CallToolResult:
    from mili_mcp.mcp_server import _get_context

    project_path, err = _validate_dir(arguments, "projectPath")
    if err:
        return err
    assert project_path is not None
    branch_name, branch_err = sanitize_branch_name(arguments.get("branchName"))
    if branch_err:
        return _error(branch_err, "invalid_input")
    commit_message, err = _validate_str(arguments, "commitMessage")
    if err:
        return err
    assert commit_message is not None
    preview, err = _validate_bool(arguments, "preview", True)
    if err:
        return err

    context = _get_context()
    base_branch = context.config.base_branch
    branch = feature_branch(branch_name)

    if preview:
        plan = push_feature_plan(branch_name, commit_message, base_branch=base_branch)
        response = PreviewResponse(
            preview=True,
            action="GIT_PUSH_FEATURE",
            details={
                "projectPath": str(project_path),
                "branch": branch,
                "commitMessage": commit_message,
                "commands": [shlex.join(["git", *args]) for args in plan],
            },
            hint="To execute these commands, call this tool again with 'preview: false'.",
        )
        return _text(response)

    try:
        results = push_feature(context.git, project_path, branch_name, commit_message, base_branch=base_branch)
    except GitCommandError as exc:
        return _git_error(exc)
    return _text(
        {
            "status": "ok",
            "branch": branch,
            "message": f"Git flow completed successfully for branch {branch}.",
            "steps": [{"command": r.display, "stdout": r.stdout, "stderr": r.stderr} for r in results],
        }
    )


async def _handle_run_command(arguments: dict[str, Any]) -> CallToolResult:
    from mili_mcp.mcp_server import _get_context

    project_path, err = _validate_dir(arguments, "projectPath")
    if err:
        return err
    assert project_path is not None
    command_args, err = _validate_str(arguments, "commandArgs")
    if err:
        return err
    assert command_args is not None
    try:
        args = parse_command_args(command_args)
    except ValueError as e:
        return _error(str(e), "invalid_input")

    try:
        result = _get_context().git.run(args, project_path)
    except GitCommandError as exc:
        return _git_error(exc)
    return _text({"command": result.display, "stdout": result.stdout, "stderr": result.stderr})
