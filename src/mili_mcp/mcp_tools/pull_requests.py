"""MCP tool for Azure DevOps pull-request creation (``mili_create_pr``)."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from mcp.types import CallToolResult, Tool

from mili_mcp.azure_devops import DEFAULT_TARGET_BRANCH, REPOSITORY_IDS, AzureDevOpsClient, PullRequestError, resolve_repository
from mili_mcp.mcp_tools.common import _error, _text, _validate_bool, _validate_str
from mili_mcp.types.api import PreviewResponse


def register() -> tuple[list[Tool], dict[str, Callable[..., Any]]]:
    """Return (tool_definitions, handler_map) for pull-request tools."""
    known = ", ".join(f"'{name}'" for name in REPOSITORY_IDS)
    tools = [
        Tool(
            name="mili_create_pr",
            description=(
                "Creates a Pull Request in Azure DevOps for the Mili project. "
                f"Target branch defaults to '{DEFAULT_TARGET_BRANCH}'. Defaults to preview mode."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "repository": {"type": "string", "description": f"Repository name ({known}) or ID."},
                    "sourceBranch": {"type": "string", "description": "Source branch name (without refs/heads/)."},
                    "targetBranch": {
                        "type": "string",
                        "description": f"Target branch name (default: {DEFAULT_TARGET_BRANCH}).",
                    },
                    "title": {"type": "string", "description": "Title of the PR."},
                    "description": {"type": "string", "description": "Description of the PR."},
                    "preview": {
                        "type": "boolean",
                        "default": True,
                        "description": "If true (default), shows the PR details without creating it. Set to false to create.",
                    },
                },
                "required": ["repository", "sourceBranch", "title"],
            },
        ),
    ]

    handlers: dict[str, Callable[..., Any]] = {
        "mili_create_pr": _handle_create_pr,
    }

    return tools, handlers


async def _handle_create_pr(arguments: dict[str, Any]) -> CallToolResult:
    from mili_mcp.mcp_server import _get_context

    values: dict[str, str | None] = {}
    for key, required in (
        ("repository", True),
        ("sourceBranch", True),
        ("title", True),
        ("targetBranch", False),
        ("description", False),
    ):
        value, err = _validate_str(arguments, key, required=required)
        if err:
            return err
        values[key] = value
    preview, err = _validate_bool(arguments, "preview", True)
    if err:
        return err

    repository = values["repository"] or ""
    source_branch = values["sourceBranch"] or ""
    title = values["title"] or ""
    target_branch = values["targetBranch"] or DEFAULT_TARGET_BRANCH
    description = values["description"] or ""

    if preview:
        response = PreviewResponse(
            preview=True,
            action="mili_create_pr",
            details={
                "repository": repository,
                "repositoryId": resolve_repository(repository),
                "sourceBranch": source_branch,
                "targetBranch": target_branch,
                "title": title,
                "description": description or "(none)",
            },
            hint="To create this Pull Request, call this tool again with 'preview: false'.",
        )
        return _text(response)

    context = _get_context()
    try:
        client = AzureDevOpsClient.from_config(context.config, transport=context.http_transport)
    except ValueError as e:
        return _error(str(e), "not_configured")

    try:
        pr = await client.create_pull_request(
            repository,
            source_branch,
            title,
            target_branch=target_branch,
            description=description,
        )
    except PullRequestError as exc:
        return _error(f"Error creating PR: {exc}", "azure_devops_error", status=exc.status, detail=exc.detail)
    return _text(
        {
            "status": "created",
            "pullRequestId": pr.id,
            "url": pr.url,
            "message": f"PR Created Successfully! ID: {pr.id}",
        }
    )
