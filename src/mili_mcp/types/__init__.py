# IMPORT CONSTRAINT: types/ modules must only import from typing, stdlib, and each other.
"""Typed wire-format contracts for mili-mcp persistence and tool responses."""

from __future__ import annotations

from mili_mcp.types.api import ErrorResponse, PreviewResponse
from mili_mcp.types.tasks import (
    ActiveTaskDict,
    ArchivedTaskDict,
    HistoryEntryDict,
    ISOTimestamp,
)

__all__ = [
    "ActiveTaskDict",
    "ArchivedTaskDict",
    "ErrorResponse",
    "HistoryEntryDict",
    "ISOTimestamp",
    "PreviewResponse",
]
