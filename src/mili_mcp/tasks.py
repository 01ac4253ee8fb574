"""Active-task lifecycle: start, read, update, complete.

A project is in one of two states, derived solely from whether
``.mili/active_task.json`` exists. Each action is a transition guarded by
``_GUARDS``; a failed guard yields either an informational or an error
outcome depending on the action. ``update`` with nothing active is an error,
while ``read`` and ``complete`` only report that nothing is active.

No action raises. Storage failures are returned as error outcomes carrying
the failing exception's code.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Literal

from mili_mcp.task_store import TaskError, TaskStore
from mili_mcp.types.tasks import ActiveTaskDict, ArchivedTaskDict, HistoryEntryDict, ISOTimestamp

logger = logging.getLogger(__name__)

DEFAULT_TASK_NAME = "Untitled Task"
DEFAULT_STATUS = "Pending"
COMPLETED_STATUS = "Completed"
START_NOTE = "Task started"

OutcomeKind = Literal["ok", "info", "error"]


class TaskState(Enum):
    NO_ACTIVE_TASK = "no_active_task"
    ACTIVE_TASK = "active_task"


class TaskAction(str, Enum):
    START = "start"
    READ = "read"
    UPDATE = "update"
    COMPLETE = "complete"


VALID_ACTIONS: tuple[str, ...] = tuple(a.value for a in TaskAction)


@dataclass(frozen=True)
class _Guard:
    """What an action does when it requires an active task and none exists."""

    kind: OutcomeKind
    message: str


# Actions absent from this table have no precondition.
_GUARDS: dict[TaskAction, _Guard] = {
    TaskAction.UPDATE: _Guard("error", "No active task found to update."),
    TaskAction.COMPLETE: _Guard("info", "No active task found."),
}

_NO_TASK_TO_READ = "No active task found. Use 'start' to create one."


@dataclass(frozen=True)
class TaskOutcome:
    """Result of one action.

    ``kind`` distinguishes a normal result, an informational non-result
    (nothing to act on) and a failure. ``code`` is set for info and error.
    """

    kind: OutcomeKind
    message: str
    task: ActiveTaskDict | ArchivedTaskDict | None = None
    code: str | None = None

    @property
    def is_error(self) -> bool:
        return self.kind == "error"

    @classmethod
    def failure(cls, exc: TaskError) -> TaskOutcome:
        return cls("error", str(exc), code=exc.code)


def now_iso() -> ISOTimestamp:
    """UTC timestamp with millisecond precision and a ``Z`` suffix."""
    stamp = datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return ISOTimestamp(stamp)


class TaskController:
    """Drives the active-task state machine for one project."""

    def __init__(self, store: TaskStore, *, clock: Callable[[], ISOTimestamp] = now_iso) -> None:
        self.store = store
        self._clock = clock

    @classmethod
    def for_project(cls, project_path: str | Path, *, clock: Callable[[], ISOTimestamp] = now_iso) -> TaskController:
        return cls(TaskStore(project_path), clock=clock)

    def observe(self) -> tuple[TaskState, ActiveTaskDict | None]:
        """Return the current state and, when active, its record."""
        record = self.store.read_active()
        if record is None:
            return TaskState.NO_ACTIVE_TASK, None
        return TaskState.ACTIVE_TASK, record

    def run(
        self,
        action: TaskAction | str,
        *,
        name: str | None = None,
        status: str | None = None,
        plan: str | None = None,
        notes: str | None = None,
    ) -> TaskOutcome:
        """Dispatch *action*. Unsupplied fields are ignored by actions that do not use them."""
        action = TaskAction(action)
        try:
            self.store.ensure_namespace()
            if action is TaskAction.START:
                return self._start(name=name, status=status, plan=plan)

            state, record = self.observe()
            if state is TaskState.NO_ACTIVE_TASK:
                return self._guard_failed(action)
            assert record is not None

            if action is TaskAction.READ:
                return TaskOutcome("ok", "Active task", task=record)
            if action is TaskAction.UPDATE:
                return self._update(record, name=name, status=status, plan=plan, notes=notes)
            return self._complete(record)
        except TaskError as exc:
            logger.warning("Task %s failed for %s: %s", action.value, self.store.project_path, exc)
            return TaskOutcome.failure(exc)

    # Convenience wrappers -------------------------------------------------

    def start(self, name: str | None = None, status: str | None = None, plan: str | None = None) -> TaskOutcome:
        return self.run(TaskAction.START, name=name, status=status, plan=plan)

    def read(self) -> TaskOutcome:
        return self.run(TaskAction.READ)

    def update(
        self,
        *,
        name: str | None = None,
        status: str | None = None,
        plan: str | None = None,
        notes: str | None = None,
    ) -> TaskOutcome:
        return self.run(TaskAction.UPDATE, name=name, status=status, plan=plan, notes=notes)

    def complete(self) -> TaskOutcome:
        return self.run(TaskAction.COMPLETE)

    # Transitions ----------------------------------------------------------

    def _guard_failed(self, action: TaskAction) -> TaskOutcome:
        guard = _GUARDS.get(action)
        if guard is None:
            return TaskOutcome("info", _NO_TASK_TO_READ, code=TaskState.NO_ACTIVE_TASK.value)
        return TaskOutcome(guard.kind, guard.message, code=TaskState.NO_ACTIVE_TASK.value)

    def _start(self, *, name: str | None, status: str | None, plan: str | None) -> TaskOutcome:
        now = self._clock()
        record: ActiveTaskDict = {
            "name": name or DEFAULT_TASK_NAME,
            "startDate": now,
            "status": status or DEFAULT_STATUS,
            "plan": plan or "",
            "history": [HistoryEntryDict(date=now, note=START_NOTE)],
        }
        if self.store.active_path.exists():
            logger.warning("Replacing active task in %s without archiving it", self.store.project_path)
        self.store.write_active(record)
        return TaskOutcome("ok", f"Task started successfully in {self.store.active_path}", task=record)

    def _update(
        self,
        record: ActiveTaskDict,
        *,
        name: str | None,
        status: str | None,
        plan: str | None,
        notes: str | None,
    ) -> TaskOutcome:
        if name:
            record["name"] = name
        if status:
            record["status"] = status
        if plan:
            record["plan"] = plan
        if notes:
            record["history"].append(HistoryEntryDict(date=self._clock(), note=notes))
        self.store.write_active(record)
        return TaskOutcome("ok", "Task updated successfully.", task=record)

    def _complete(self, record: ActiveTaskDict) -> TaskOutcome:
        archived: ArchivedTaskDict = {**record, "status": COMPLETED_STATUS, "completedDate": self._clock()}  # type: ignore[typeddict-item]
        # Archive first: an interruption here leaves a duplicate, never a loss.
        self.store.append_archive(archived)
        try:
            removed = self.store.delete_active()
        except TaskError as exc:
            msg = f"Task archived to {self.store.history_path.name} but the active record could not be removed: {exc}"
            return TaskOutcome("error", msg, task=archived, code=exc.code)
        if not removed:
            logger.debug("Active task in %s vanished before removal", self.store.project_path)
        return TaskOutcome("ok", f"Task completed and archived to {self.store.history_path.name}.", task=archived)
