"""MCP tool for HTML document creation (``CREATE_NEW_DOCUMENT``)."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from mcp.types import CallToolResult, Tool

from mili_mcp.documents import DocumentError
from mili_mcp.mcp_tools.common import _error, _text, _validate_int_range, _validate_str


def register() -> tuple[list[Tool], dict[str, Callable[..., Any]]]:
    """Return (tool_definitions, handler_map) for document tools."""
    tools = [
        Tool(
            name="CREATE_NEW_DOCUMENT",
            description=(
                "Create a new document in mili with associated HTML content. "
                "The HTML content must be compatible with the Jodit React editor."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "title": {"type": "string", "description": "The name of the document (dcName)"},
                    "content": {
                        "type": "string",
                        "description": (
                            "The HTML content of the document (dchContent). Must be well-formatted HTML "
                            "compatible with the Jodit React editor."
                        ),
                    },
                    "route": {"type": "string", "description": "The S3 path or route for the document (dchRoute)"},
                    "pages": {
                        "type": "integer",
                        "default": 1,
                        "minimum": 1,
                        "description": "Number of pages (dcPages, dchPages)",
                    },
                },
                "required": ["title", "content", "route"],
            },
        ),
    ]

    handlers: dict[str, Callable[..., Any]] = {
        "CREATE_NEW_DOCUMENT": _handle_create_document,
    }

    return tools, handlers


async def _handle_create_document(arguments: dict[str, Any]) -> CallToolResult:
    from mili_mcp.mcp_server import _get_context

    title, err = _validate_str(arguments, "title")
    if err:
        return err
    content, err = _validate_str(arguments, "content")
    if err:
        return err
    route, err = _validate_str(arguments, "route")
    if err:
        return err
    pages = arguments.get("pages", 1)
    pages_err = _validate_int_range(pages, "pages", min_val=1)
    if pages_err:
        return pages_err
    assert title is not None and content is not None and route is not None

    documents = _get_context().documents
    if documents is None:
        return _error(
            "Documents database not configured",
            "not_configured",
            hint="Start the server with DB_HOST, DB_USER, DB_PASS and DB_NAME set",
        )
    try:
        created = documents.create_document(title, content, route, 1 if pages is None else pages)
    except DocumentError as e:
        return _error(str(e), "database_error")
    return _text(
        {
            "status": "created",
            "dcId": created.dc_id,
            "dchId": created.dch_id,
            "message": f"Document created successfully. dcId: {created.dc_id}, dchId: {created.dch_id}",
        }
    )
