"""mili-mcp: MCP server for task tracking and project automation."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("mili-mcp")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

from mili_mcp.task_store import TaskStore
from mili_mcp.tasks import TaskController, TaskOutcome

__all__ = ["TaskController", "TaskOutcome", "TaskStore", "__version__"]
