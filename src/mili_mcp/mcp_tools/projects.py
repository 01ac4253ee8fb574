"""MCP tools for read-only project inspection."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from mcp.types import CallToolResult, Tool

from mili_mcp.mcp_tools.common import _text, _validate_bool, _validate_dir, _validate_int_range, _validate_str
from mili_mcp.project_scan import DEFAULT_DEPTH, get_structure, search_files

_MAX_DEPTH = 10
# Cap on search matches returned in one response.
_MAX_MATCHES = 200


def register() -> tuple[list[Tool], dict[str, Callable[..., Any]]]:
    """Return (tool_definitions, handler_map) for project inspection tools."""
    tools = [
        Tool(
            name="mili_get_structure",
            description=(
                "Get the file structure of the project directory. "
                "Useful for understanding project layout without reading every file."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "absolutePath": {"type": "string", "description": "The absolute path of the root directory to scan"},
                    "depth": {
                        "type": "integer",
                        "default": DEFAULT_DEPTH,
                        "minimum": 0,
                        "maximum": _MAX_DEPTH,
                        "description": f"Depth of recursion (default {DEFAULT_DEPTH})",
                    },
                },
                "required": ["absolutePath"],
            },
        ),
        Tool(
            name="mili_search_project",
            description="Search for a string in all files within a directory. Returns list of files containing the string.",
            inputSchema={
                "type": "object",
                "properties": {
                    "absolutePath": {"type": "string", "description": "The absolute path of the root directory to search"},
                    "query": {"type": "string", "description": "The string to search for"},
                    "caseSensitive": {
                        "type": "boolean",
                        "default": False,
                        "description": "Whether search should be case sensitive",
                    },
                },
                "required": ["absolutePath", "query"],
            },
        ),
    ]

    handlers: dict[str, Callable[..., Any]] = {
        "mili_get_structure": _handle_get_structure,
        "mili_search_project": _handle_search_project,
    }

    return tools, handlers


async def _handle_get_structure(arguments: dict[str, Any]) -> CallToolResult:
    root, err = _validate_dir(arguments, "absolutePath")
    if err:
        return err
    assert root is not None
    depth = arguments.get("depth", DEFAULT_DEPTH)
    depth_err = _validate_int_range(depth, "depth", min_val=0, max_val=_MAX_DEPTH)
    if depth_err:
        return depth_err
    structure = get_structure(root, DEFAULT_DEPTH if depth is None else depth)
    return _text(structure or "(Empty or no accessible files)")


async def _handle_search_project(arguments: dict[str, Any]) -> CallToolResult:
    root, err = _validate_dir(arguments, "absolutePath")
    if err:
        return err
    assert root is not None
    query, err = _validate_str(arguments, "query")
    if err:
        return err
    assert query is not None
    case_sensitive, err = _validate_bool(arguments, "caseSensitive", False)
    if err:
        return err

    matches = search_files(root, query, case_sensitive=case_sensitive)
    truncated = len(matches) > _MAX_MATCHES
    if not matches:
        return _text({"query": query, "matches": [], "count": 0, "message": "No matches found."})
    return _text(
        {
            "query": query,
            "matches": [str(p) for p in matches[:_MAX_MATCHES]],
            "count": len(matches),
            "truncated": truncated,
        }
    )
