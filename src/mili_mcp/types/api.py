"""TypedDicts for MCP tool responses."""

from __future__ import annotations

from typing import NotRequired, TypedDict


class ErrorResponse(TypedDict):
    """Standard error envelope returned by every tool error path."""

    error: str
    code: str
    hint: NotRequired[str]


class PreviewResponse(TypedDict):
    """Dry-run description returned by tools that default to ``preview=true``."""

    preview: bool
    action: str
    details: dict[str, object]
    hint: str
