"""File-backed persistence for the per-project active task.

Convention-based layout: each project root gets a private ``.mili/`` directory
holding ``active_task.json`` (the single in-progress task, absent when none)
and ``task_history.jsonl`` (append-only archive, one completed task per line).

The store does no merging and makes no state decisions; that is the job of
:mod:`mili_mcp.tasks`.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from pathlib import Path
from typing import Any

from mili_mcp.types.tasks import ActiveTaskDict, ArchivedTaskDict

logger = logging.getLogger(__name__)

MILI_DIR_NAME = ".mili"
ACTIVE_TASK_FILENAME = "active_task.json"
TASK_HISTORY_FILENAME = "task_history.jsonl"

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TaskError(Exception):
    """Base class for task storage failures. ``code`` is the wire error code."""

    code = "task_error"


class StorageUnavailable(TaskError):
    """The private directory or one of its files cannot be created, read or written."""

    code = "storage_unavailable"


class ProjectPathMissing(StorageUnavailable):
    """The project root does not exist (or is not a directory)."""

    code = "project_path_missing"


class CorruptState(TaskError):
    """A persisted record exists but cannot be decoded as a task."""

    code = "corrupt_state"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def write_atomic(path: Path, content: str) -> None:
    """Write content to path atomically via temp file + os.replace()."""
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        tmp.write_text(content, encoding="utf-8")
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(OSError):
            tmp.unlink()
        raise


def _check_task_shape(data: Any) -> str | None:
    """Return a description of the first shape problem in *data*, or None."""
    if not isinstance(data, dict):
        return "expected a JSON object"
    for key in ("name", "startDate", "status"):
        if not isinstance(data.get(key), str):
            return f"'{key}' must be a string"
    if not data["name"]:
        return "'name' must not be empty"
    if "plan" in data and not isinstance(data["plan"], str):
        return "'plan' must be a string"
    if "completedDate" in data and not isinstance(data["completedDate"], str):
        return "'completedDate' must be a string"
    history = data.get("history")
    if not isinstance(history, list):
        return "'history' must be a list"
    for i, entry in enumerate(history):
        if not isinstance(entry, dict) or not isinstance(entry.get("date"), str) or not isinstance(entry.get("note"), str):
            return f"history entry {i} must have string 'date' and 'note'"
    return None


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class TaskStore:
    """Active-task record and archival log for one project root."""

    def __init__(self, project_path: str | Path) -> None:
        self.project_path = Path(project_path)
        self.mili_dir = self.project_path / MILI_DIR_NAME
        self.active_path = self.mili_dir / ACTIVE_TASK_FILENAME
        self.history_path = self.mili_dir / TASK_HISTORY_FILENAME

    def __repr__(self) -> str:
        return f"TaskStore({str(self.project_path)!r})"

    def ensure_namespace(self) -> None:
        """Create ``.mili/`` under the project root if it does not exist yet."""
        if not self.project_path.is_dir():
            msg = f"Project path not found: {self.project_path}"
            raise ProjectPathMissing(msg)
        try:
            self.mili_dir.mkdir(exist_ok=True)
        except OSError as exc:
            msg = f"Cannot create {self.mili_dir}: {exc}"
            raise StorageUnavailable(msg) from exc

    def read_active(self) -> ActiveTaskDict | None:
        """Return the active task, or None when no task is in progress.

        Raises CorruptState if the file exists but is not a valid task record.
        The file is left untouched either way.
        """
        try:
            raw = self.active_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as exc:
            msg = f"Active task file {self.active_path} is not valid UTF-8: {exc}"
            raise CorruptState(msg) from exc
        except OSError as exc:
            msg = f"Cannot read {self.active_path}: {exc}"
            raise StorageUnavailable(msg) from exc

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            msg = f"Active task file {self.active_path} is not valid JSON: {exc}"
            raise CorruptState(msg) from exc
        problem = _check_task_shape(data)
        if problem is not None:
            msg = f"Active task file {self.active_path} is malformed: {problem}"
            raise CorruptState(msg)
        result: ActiveTaskDict = data
        return result

    def write_active(self, record: ActiveTaskDict) -> None:
        """Replace the active task record in full."""
        try:
            write_atomic(self.active_path, json.dumps(record, indent=2) + "\n")
        except OSError as exc:
            msg = f"Cannot write {self.active_path}: {exc}"
            raise StorageUnavailable(msg) from exc

    def delete_active(self) -> bool:
        """Remove the active task record. Returns False if it was already gone."""
        try:
            self.active_path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            msg = f"Cannot remove {self.active_path}: {exc}"
            raise StorageUnavailable(msg) from exc
        return True

    def append_archive(self, record: ArchivedTaskDict) -> None:
        """Append one completed task as a single JSON line."""
        line = json.dumps(record, separators=(",", ":")) + "\n"
        try:
            with self.history_path.open("a", encoding="utf-8") as f:
                f.write(line)
                f.flush()
                os.fsync(f.fileno())
        except OSError as exc:
            msg = f"Cannot append to {self.history_path}: {exc}"
            raise StorageUnavailable(msg) from exc

    def read_archive(self) -> list[ArchivedTaskDict]:
        """Return every archived task, oldest first."""
        try:
            lines = self.history_path.read_text(encoding="utf-8").splitlines()
        except FileNotFoundError:
            return []
        except UnicodeDecodeError as exc:
            msg = f"{self.history_path} is not valid UTF-8: {exc}"
            raise CorruptState(msg) from exc
        except OSError as exc:
            msg = f"Cannot read {self.history_path}: {exc}"
            raise StorageUnavailable(msg) from exc

        archived: list[ArchivedTaskDict] = []
        for lineno, line in enumerate(lines, 1):
            if not line.strip():
                continue
            try:
                archived.append(json.loads(line))
            except json.JSONDecodeError as exc:
                msg = f"{self.history_path} line {lineno} is not valid JSON: {exc}"
                raise CorruptState(msg) from exc
        return archived
