"""Pure helpers and the collaborator context shared across MCP tool modules.

This module has NO dependency on ``mcp_server`` module globals, so it can
be imported freely without triggering circular-import issues.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx
from mcp.types import CallToolResult, TextContent

from mili_mcp.config import ServerConfig
from mili_mcp.documents import DocumentStore
from mili_mcp.git_ops import GitRunner
from mili_mcp.types.api import ErrorResponse
from mili_mcp.validation import sanitize_text

logger = logging.getLogger(__name__)


@dataclass
class ToolContext:
    """External collaborators handed to tool handlers.

    ``documents`` is None for contexts built without a database.
    ``http_transport`` overrides the httpx transport (tests use MockTransport).
    """

    config: ServerConfig = field(default_factory=ServerConfig)
    git: GitRunner = field(default_factory=GitRunner)
    documents: DocumentStore | None = None
    http_transport: httpx.AsyncBaseTransport | None = None

    @classmethod
    def from_config(cls, config: ServerConfig) -> ToolContext:
        return cls(config=config, documents=DocumentStore.from_config(config))


def _text(content: object) -> CallToolResult:
    if isinstance(content, str):
        text = content
    else:
        text = json.dumps(content, indent=2, default=str)
    return CallToolResult(content=[TextContent(type="text", text=text)], isError=False)


def _error(message: str, code: str, **extra: Any) -> CallToolResult:
    data: ErrorResponse = {"error": message, "code": code}
    payload: dict[str, Any] = {**data, **extra}
    return CallToolResult(
        content=[TextContent(type="text", text=json.dumps(payload, indent=2, default=str))],
        isError=True,
    )


def _validate_str(arguments: dict[str, Any], name: str, *, required: bool = True) -> tuple[str | None, CallToolResult | None]:
    """Return (value, None) or (None, error_response) for a string argument."""
    value, err = sanitize_text(arguments.get(name), name, required=required)
    if err:
        return (None, _error(err, "invalid_input"))
    return (value, None)


def _validate_bool(arguments: dict[str, Any], name: str, default: bool) -> tuple[bool, CallToolResult | None]:
    value = arguments.get(name, default)
    if value is None:
        return (default, None)
    if not isinstance(value, bool):
        return (default, _error(f"{name} must be a boolean", "invalid_input"))
    return (value, None)


def _validate_int_range(
    value: Any,
    name: str,
    min_val: int | None = None,
    max_val: int | None = None,
) -> CallToolResult | None:
    """Return a validation error if *value* is not ``None`` and outside range.

    When *value* is ``None`` it is considered optional and passes.
    """
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        return _error(f"{name} must be an integer", "invalid_input")
    if min_val is not None and value < min_val:
        return _error(f"{name} must be >= {min_val}", "invalid_input")
    if max_val is not None and value > max_val:
        return _error(f"{name} must be <= {max_val}", "invalid_input")
    return None


def _validate_dir(arguments: dict[str, Any], name: str) -> tuple[Path | None, CallToolResult | None]:
    """Require *name* to be an absolute path to an existing directory."""
    raw, err = _validate_str(arguments, name)
    if err:
        return (None, err)
    assert raw is not None
    path = Path(raw)
    if not path.is_absolute():
        return (None, _error(f"{name} must be an absolute path: {raw}", "invalid_input"))
    if not path.is_dir():
        return (None, _error(f"Path not found: {raw}", "not_found"))
    return (path, None)
