"""Tests for the active-task state machine."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from mili_mcp.task_store import StorageUnavailable, TaskStore
from mili_mcp.tasks import (
    COMPLETED_STATUS,
    DEFAULT_STATUS,
    DEFAULT_TASK_NAME,
    START_NOTE,
    TaskAction,
    TaskController,
    TaskState,
    now_iso,
)


class TestStartRead:
    def test_start_then_read_returns_supplied_values(self, controller: TaskController) -> None:
        outcome = controller.start(name="Login page", status="In progress", plan="1. form\n2. api")
        assert outcome.kind == "ok"

        read = controller.read()
        assert read.kind == "ok"
        assert read.task is not None
        assert read.task["name"] == "Login page"
        assert read.task["status"] == "In progress"
        assert read.task["plan"] == "1. form\n2. api"
        assert len(read.task["history"]) == 1
        assert read.task["history"][0]["note"] == START_NOTE

    def test_start_defaults(self, controller: TaskController) -> None:
        controller.start()
        task = controller.read().task
        assert task is not None
        assert task["name"] == DEFAULT_TASK_NAME
        assert task["status"] == DEFAULT_STATUS
        assert task["plan"] == ""
        assert len(task["history"]) == 1

    def test_start_stamps_start_date_and_first_entry_together(self, controller: TaskController) -> None:
        controller.start(name="T")
        task = controller.read().task
        assert task is not None
        assert task["startDate"] == task["history"][0]["date"]
        assert "completedDate" not in task

    def test_start_creates_namespace(self, controller: TaskController, project: Path) -> None:
        controller.start(name="T")
        assert (project / ".mili" / "active_task.json").exists()

    def test_read_does_not_modify_file(self, controller: TaskController, store: TaskStore) -> None:
        controller.start(name="T")
        before = store.active_path.read_text()
        controller.read()
        controller.read()
        assert store.active_path.read_text() == before

    def test_read_without_task_is_informational(self, controller: TaskController) -> None:
        outcome = controller.read()
        assert outcome.kind == "info"
        assert not outcome.is_error
        assert outcome.code == "no_active_task"
        assert "No active task found" in outcome.message


class TestUpdate:
    def test_notes_only_appends_one_entry(self, controller: TaskController) -> None:
        controller.start(name="T", status="Pending", plan="p")
        outcome = controller.update(notes="wired the form")
        assert outcome.kind == "ok"

        task = controller.read().task
        assert task is not None
        assert (task["name"], task["status"], task["plan"]) == ("T", "Pending", "p")
        assert len(task["history"]) == 2
        assert task["history"][-1]["note"] == "wired the form"

    def test_overlay_supplied_fields(self, controller: TaskController) -> None:
        controller.start(name="T", status="Pending", plan="p")
        start_date = controller.read().task["startDate"]  # type: ignore[index]
        controller.update(status="Blocked")
        task = controller.read().task
        assert task is not None
        assert task["status"] == "Blocked"
        assert task["name"] == "T"
        assert task["plan"] == "p"
        assert task["startDate"] == start_date
        assert len(task["history"]) == 1

    def test_update_all_fields(self, controller: TaskController) -> None:
        controller.start(name="T")
        controller.update(name="T2", status="Review", plan="new plan", notes="n")
        task = controller.read().task
        assert task is not None
        assert (task["name"], task["status"], task["plan"]) == ("T2", "Review", "new plan")
        assert [e["note"] for e in task["history"]] == [START_NOTE, "n"]

    def test_empty_strings_leave_fields_unchanged(self, controller: TaskController) -> None:
        controller.start(name="T", status="S", plan="P")
        controller.update(name="", status="", plan="", notes="")
        task = controller.read().task
        assert task is not None
        assert (task["name"], task["status"], task["plan"]) == ("T", "S", "P")
        assert len(task["history"]) == 1

    def test_history_preserves_insertion_order(self, controller: TaskController) -> None:
        controller.start(name="T")
        for i in range(5):
            controller.update(notes=f"step {i}")
        task = controller.read().task
        assert task is not None
        notes = [e["note"] for e in task["history"]]
        assert notes == [START_NOTE, "step 0", "step 1", "step 2", "step 3", "step 4"]
        dates = [e["date"] for e in task["history"]]
        assert dates == sorted(dates)

    def test_update_without_task_is_error(self, controller: TaskController, store: TaskStore) -> None:
        outcome = controller.update(status="x", notes="y")
        assert outcome.kind == "error"
        assert outcome.is_error
        assert outcome.code == "no_active_task"
        assert outcome.message == "No active task found to update."
        assert not store.active_path.exists()

    def test_unknown_keys_survive_update(self, controller: TaskController, store: TaskStore) -> None:
        controller.start(name="T")
        data = json.loads(store.active_path.read_text())
        data["ticket"] = "MILI-42"
        store.active_path.write_text(json.dumps(data))
        controller.update(notes="n")
        assert json.loads(store.active_path.read_text())["ticket"] == "MILI-42"


class TestComplete:
    def test_complete_archives_and_clears(self, controller: TaskController, store: TaskStore) -> None:
        controller.start(name="Ship it", status="Almost", plan="p")
        controller.update(notes="done coding")
        outcome = controller.complete()
        assert outcome.kind == "ok"
        assert "task_history.jsonl" in outcome.message

        assert controller.read().kind == "info"
        assert not store.active_path.exists()

        lines = store.history_path.read_text().splitlines()
        assert len(lines) == 1
        archived = json.loads(lines[0])
        assert archived["status"] == COMPLETED_STATUS
        assert archived["completedDate"]
        assert archived["name"] == "Ship it"
        assert archived["plan"] == "p"
        assert [e["note"] for e in archived["history"]] == [START_NOTE, "done coding"]

    def test_completed_date_after_start(self, controller: TaskController, store: TaskStore) -> None:
        controller.start(name="T")
        controller.complete()
        archived = store.read_archive()[0]
        assert archived["completedDate"] > archived["startDate"]

    def test_complete_without_task_is_informational(self, controller: TaskController, store: TaskStore) -> None:
        outcome = controller.complete()
        assert outcome.kind == "info"
        assert not outcome.is_error
        assert outcome.message == "No active task found."
        assert not store.history_path.exists()

    def test_update_and_complete_asymmetry(self, controller: TaskController) -> None:
        """update with nothing active is an error; complete is not."""
        assert controller.update(notes="x").is_error
        assert not controller.complete().is_error

    def test_n_completions_give_n_lines_in_order(self, controller: TaskController, store: TaskStore) -> None:
        for i in range(4):
            controller.start(name=f"Task {i}")
            controller.update(notes=f"note {i}")
            controller.complete()

        lines = store.history_path.read_text().splitlines()
        assert len(lines) == 4
        decoded = [json.loads(line) for line in lines]
        assert [d["name"] for d in decoded] == ["Task 0", "Task 1", "Task 2", "Task 3"]
        completed = [d["completedDate"] for d in decoded]
        assert completed == sorted(completed)
        assert all(d["status"] == COMPLETED_STATUS for d in decoded)

    def test_archive_failure_keeps_active_record(
        self, controller: TaskController, store: TaskStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        controller.start(name="Keep me")

        def _fail(record: Any) -> None:
            raise StorageUnavailable("disk full")

        monkeypatch.setattr(store, "append_archive", _fail)
        outcome = controller.complete()
        assert outcome.is_error
        assert outcome.code == "storage_unavailable"
        task = controller.read().task
        assert task is not None
        assert task["name"] == "Keep me"
        assert task["status"] != COMPLETED_STATUS

    def test_delete_failure_after_archive_leaves_duplicate(
        self, controller: TaskController, store: TaskStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        controller.start(name="Dup")

        def _fail() -> bool:
            raise StorageUnavailable("read-only")

        monkeypatch.setattr(store, "delete_active", _fail)
        outcome = controller.complete()
        assert outcome.is_error
        assert "archived" in outcome.message
        # Safe failure direction: archived copy and active record both exist.
        assert len(store.read_archive()) == 1
        assert store.active_path.exists()

    def test_archive_written_before_delete(
        self, controller: TaskController, store: TaskStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        calls: list[str] = []
        original_append = store.append_archive
        original_delete = store.delete_active

        def _append(record: Any) -> None:
            calls.append("append")
            original_append(record)

        def _delete() -> bool:
            calls.append("delete")
            return original_delete()

        monkeypatch.setattr(store, "append_archive", _append)
        monkeypatch.setattr(store, "delete_active", _delete)
        controller.start(name="T")
        controller.complete()
        assert calls == ["append", "delete"]


class TestOverwriteOnStart:
    def test_second_start_discards_first_irrecoverably(self, controller: TaskController, store: TaskStore) -> None:
        controller.start(name="First", plan="first plan")
        controller.update(notes="work on first")
        outcome = controller.start(name="Second")
        assert outcome.kind == "ok"

        task = controller.read().task
        assert task is not None
        assert task["name"] == "Second"
        assert len(task["history"]) == 1
        assert "First" not in store.active_path.read_text()
        # Not archived either.
        assert not store.history_path.exists()
        assert store.read_archive() == []

    def test_start_logs_replacement(self, controller: TaskController, caplog: pytest.LogCaptureFixture) -> None:
        controller.start(name="First")
        with caplog.at_level("WARNING", logger="mili_mcp.tasks"):
            controller.start(name="Second")
        assert "without archiving" in caplog.text

    def test_start_recovers_from_corrupt_record(self, controller: TaskController, store: TaskStore) -> None:
        store.ensure_namespace()
        store.active_path.write_text("{broken")
        assert controller.start(name="Fresh").kind == "ok"
        assert controller.read().task["name"] == "Fresh"  # type: ignore[index]


class TestFailures:
    def test_missing_project_path(self, tmp_path: Path) -> None:
        c = TaskController.for_project(tmp_path / "missing")
        for action in TaskAction:
            outcome = c.run(action)
            assert outcome.is_error
            assert outcome.code == "project_path_missing"
            assert "Project path not found" in outcome.message
        assert not (tmp_path / "missing").exists()

    @pytest.mark.parametrize("action", [TaskAction.READ, TaskAction.UPDATE, TaskAction.COMPLETE])
    def test_corrupt_state_is_reported_not_repaired(
        self, controller: TaskController, store: TaskStore, action: TaskAction
    ) -> None:
        store.ensure_namespace()
        store.active_path.write_text("[1, 2]")
        outcome = controller.run(action, notes="x")
        assert outcome.is_error
        assert outcome.code == "corrupt_state"
        assert store.active_path.read_text() == "[1, 2]"
        assert not store.history_path.exists()

    def test_run_accepts_action_strings(self, controller: TaskController) -> None:
        assert controller.run("start", name="S").kind == "ok"
        assert controller.run("read").task["name"] == "S"  # type: ignore[index]

    def test_run_rejects_unknown_action(self, controller: TaskController) -> None:
        with pytest.raises(ValueError):
            controller.run("archive")


class TestObserve:
    def test_states(self, controller: TaskController) -> None:
        controller.store.ensure_namespace()
        assert controller.observe() == (TaskState.NO_ACTIVE_TASK, None)
        controller.start(name="T")
        state, record = controller.observe()
        assert state is TaskState.ACTIVE_TASK
        assert record is not None
        assert record["name"] == "T"
        controller.complete()
        assert controller.observe()[0] is TaskState.NO_ACTIVE_TASK


def test_now_iso_format() -> None:
    stamp = now_iso()
    assert stamp.endswith("Z")
    assert len(stamp) == len("2026-01-01T00:00:00.000Z")
