"""Tests for structured logging."""

from __future__ import annotations

import json
import logging
import logging.handlers
import os
import re
import threading
from pathlib import Path

from mili_mcp.logging import setup_logging, shorten_args, tool_extra


def _flush(logger: logging.Logger) -> None:
    for handler in logger.handlers:
        handler.flush()


class TestSetupLogging:
    def test_creates_log_file(self, tmp_path: Path) -> None:
        logger = setup_logging(tmp_path)
        logger.info("test_message", extra={"tool": "mili_manage_task", "args_data": {"action": "read"}})
        _flush(logger)
        log_path = tmp_path / "mili.log"
        assert log_path.exists()
        record = json.loads(log_path.read_text().strip())
        assert record["msg"] == "test_message"
        assert record["tool"] == "mili_manage_task"
        assert record["args"]["action"] == "read"
        assert record["level"] == "INFO"

    def test_creates_missing_log_dir(self, tmp_path: Path) -> None:
        log_dir = tmp_path / "nested" / "logs"
        logger = setup_logging(log_dir)
        logger.info("hello")
        _flush(logger)
        assert (log_dir / "mili.log").exists()

    def test_json_format(self, tmp_path: Path) -> None:
        logger = setup_logging(tmp_path)
        logger.info("formatted", extra={"tool": "GIT_RUN_COMMAND", "duration_ms": 42.5, "error": "boom"})
        _flush(logger)
        record = json.loads((tmp_path / "mili.log").read_text().strip().split("\n")[-1])
        assert record["duration_ms"] == 42.5
        assert record["error"] == "boom"

    def test_exception_recorded(self, tmp_path: Path) -> None:
        logger = setup_logging(tmp_path)
        try:
            raise ValueError("bad input")
        except ValueError:
            logger.error("tool_error", exc_info=True)
        _flush(logger)
        record = json.loads((tmp_path / "mili.log").read_text().strip().split("\n")[-1])
        assert record["exception"] == "bad input"

    def test_timestamp_is_utc_with_millis(self, tmp_path: Path) -> None:
        logger = setup_logging(tmp_path)
        logger.info("stamped")
        _flush(logger)
        record = json.loads((tmp_path / "mili.log").read_text().strip().split("\n")[-1])
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", record["ts"])

    def test_tool_extra_fields(self, tmp_path: Path) -> None:
        logger = setup_logging(tmp_path)
        logger.info("tool_call", extra=tool_extra("mili_manage_task", {"action": "read"}, duration_ms=1.5))
        _flush(logger)
        record = json.loads((tmp_path / "mili.log").read_text().strip().split("\n")[-1])
        assert record["tool"] == "mili_manage_task"
        assert record["args"] == {"action": "read"}
        assert record["duration_ms"] == 1.5
        assert "error" not in record

    def test_child_module_records_reach_file(self, tmp_path: Path) -> None:
        logger = setup_logging(tmp_path)
        logging.getLogger("mili_mcp.tasks").warning("from child")
        _flush(logger)
        record = json.loads((tmp_path / "mili.log").read_text().strip().split("\n")[-1])
        assert record["msg"] == "from child"
        assert record["logger"] == "mili_mcp.tasks"

    def test_idempotent_setup(self, tmp_path: Path) -> None:
        logger1 = setup_logging(tmp_path)
        logger2 = setup_logging(tmp_path)
        assert logger1 is logger2
        assert len(logger1.handlers) == 1

    def test_new_dir_replaces_handler(self, tmp_path: Path) -> None:
        first = tmp_path / "a"
        second = tmp_path / "b"
        setup_logging(first)
        logger = setup_logging(second)
        assert len(logger.handlers) == 1
        handler = logger.handlers[0]
        assert isinstance(handler, logging.handlers.RotatingFileHandler)
        assert handler.baseFilename == os.path.abspath(str(second / "mili.log"))

    def test_no_duplicate_handlers_under_concurrency(self, tmp_path: Path) -> None:
        """Concurrent setup_logging calls must not produce duplicate handlers."""
        results: list[logging.Logger] = []
        barrier = threading.Barrier(4)

        def call_setup() -> None:
            barrier.wait()
            results.append(setup_logging(tmp_path))

        threads = [threading.Thread(target=call_setup) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(results) == 4
        assert all(r is results[0] for r in results)
        logger = logging.getLogger("mili_mcp")
        file_handlers = [
            h
            for h in logger.handlers
            if isinstance(h, logging.handlers.RotatingFileHandler)
            and h.baseFilename == os.path.abspath(str(tmp_path / "mili.log"))
        ]
        assert len(file_handlers) == 1, f"Expected 1 handler, got {len(file_handlers)}"

    def teardown_method(self) -> None:
        """Clean up the mili_mcp logger handlers between tests."""
        logger = logging.getLogger("mili_mcp")
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)


class TestToolExtra:
    def test_long_strings_shortened(self) -> None:
        shortened = shorten_args({"content": "x" * 500, "pages": 2, "title": "short"})
        assert shortened["content"] == "x" * 200 + "... (500 chars)"
        assert shortened["pages"] == 2
        assert shortened["title"] == "short"

    def test_optional_fields_omitted(self) -> None:
        assert tool_extra("GIT_RUN_COMMAND", {}) == {"tool": "GIT_RUN_COMMAND", "args_data": {}}

    def test_error_included(self) -> None:
        extra = tool_extra("GIT_RUN_COMMAND", {}, duration_ms=3.0, error="boom")
        assert extra["error"] == "boom"
        assert extra["duration_ms"] == 3.0
