"""Fixtures for MCP server tests."""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest

from mili_mcp.config import ServerConfig
from mili_mcp.mcp_tools.common import ToolContext
from tests._db_factory import RecordingConnection, make_store


@pytest.fixture
def db_connection() -> RecordingConnection:
    return RecordingConnection()


@pytest.fixture
def mcp_context(tmp_path: Path, db_connection: RecordingConnection) -> Generator[ToolContext, None, None]:
    """Install a ToolContext with a recording documents database and no Azure token."""
    config = ServerConfig(log_dir=tmp_path / "logs")
    context = ToolContext(config=config, documents=make_store(db_connection))

    import mili_mcp.mcp_server as mcp_mod

    original = mcp_mod._context
    mcp_mod._context = context

    yield context

    mcp_mod._context = original
