"""Tests for twinbuild.utils helpers."""

import hashlib
import json
import logging
import threading
import time
from pathlib import Path

import pytest

from twinbuild.errors import ToolError
from twinbuild.utils import (
    StructuredFormatter,
    format_compile_error,
    format_duration,
    get_file_checksum,
    progress,
    run_concurrently,
    setup_logging,
    strip_ansi,
)


class TestChecksum:
    def test_matches_sha256(self, tmp_path):
        path = tmp_path / "a.js"
        path.write_bytes(b"export default 1;\n")
        assert get_file_checksum(path) == hashlib.sha256(b"export default 1;\n").hexdigest()

    def test_content_based(self, tmp_path):
        first = tmp_path / "a.js"
        second = tmp_path / "b.js"
        first.write_text("same")
        second.write_text("same")
        assert get_file_checksum(first) == get_file_checksum(second)


class TestFormatDuration:
    @pytest.mark.parametrize(
        "seconds, expected",
        [(0.5, "0.50s"), (45, "45s"), (83, "1m 23s"), (3723, "1h 2m 3s")],
    )
    def test_format(self, seconds, expected):
        assert format_duration(seconds) == expected


class TestRunConcurrently:
    def test_runs_every_item(self):
        seen = []
        lock = threading.Lock()

        def record(item):
            with lock:
                seen.append(item)

        run_concurrently(record, [1, 2, 3, 4, 5], max_workers=3)
        assert sorted(seen) == [1, 2, 3, 4, 5]

    def test_empty_is_noop(self):
        run_concurrently(lambda item: pytest.fail("called"), [])

    def test_failure_waits_for_siblings(self):
        finished = []

        def work(item):
            if item == "bad":
                raise ValueError("bad item")
            time.sleep(0.05)
            finished.append(item)

        with pytest.raises(ValueError, match="bad item"):
            run_concurrently(work, ["bad", "x", "y"], max_workers=3)

        assert sorted(finished) == ["x", "y"]

    def test_first_failure_in_item_order(self):
        def work(item):
            if item == "first":
                time.sleep(0.05)
            raise ValueError(item)

        with pytest.raises(ValueError, match="first"):
            run_concurrently(work, ["first", "second"], max_workers=2)


class TestFormatCompileError:
    def test_reformats_located_error(self, tmp_path):
        output = (
            f"\x1b[31mSyntaxError: {tmp_path}/src/a.js: Unexpected token (3:4)\x1b[0m\n"
            "  1 | const a = 1;\n"
            "> 3 | const = 1;\n"
            "    |     ^\n"
            "    at Parser.raise (/x/node_modules/@babel/parser/lib/index.js:10:1)\n"
        )
        error = ToolError("compile exited with code 1", output=output)

        formatted = format_compile_error(error, root=tmp_path)

        lines = formatted.splitlines()
        assert lines[0] == "src/a.js:3:4: SyntaxError: Unexpected token"
        assert "> 3 | const = 1;" in lines
        assert not any("Parser.raise" in line for line in lines)
        assert "\x1b" not in formatted

    def test_unlocated_error_passthrough(self, tmp_path):
        error = RuntimeError(f"cannot read {tmp_path}/src/a.js")
        assert format_compile_error(error, root=tmp_path) == "cannot read src/a.js"

    def test_empty_message_uses_class_name(self):
        assert format_compile_error(RuntimeError()) == "RuntimeError"

    def test_strip_ansi(self):
        assert strip_ansi("\x1b[1m\x1b[31mred\x1b[0m") == "red"


class TestLogging:
    def test_structured_formatter_includes_extras(self):
        record = logging.LogRecord("twinbuild", logging.INFO, __file__, 1, "Stage done", None, None)
        record.stage = "lint"
        record.event = "stage_completed"
        record.metadata = {"files": 2}

        data = json.loads(StructuredFormatter().format(record))

        assert data["message"] == "Stage done"
        assert data["level"] == "INFO"
        assert data["stage"] == "lint"
        assert data["event"] == "stage_completed"
        assert data["metadata"] == {"files": 2}

    def test_setup_logging_with_file(self, tmp_path):
        log_file = tmp_path / "logs" / "build.log"
        logger = setup_logging("INFO", "structured", log_file=log_file, console_output=False)

        logger.info("hello", extra={"event": "test"})
        for handler in logger.handlers:
            handler.flush()

        line = json.loads(log_file.read_text().splitlines()[0])
        assert line["message"] == "hello"
        assert line["event"] == "test"
        for handler in logger.handlers:
            handler.close()
        logger.handlers = []

    def test_setup_logging_replaces_handlers(self):
        logger = setup_logging("WARNING", "pretty")
        logger = setup_logging("DEBUG", "pretty")
        assert len(logger.handlers) == 1
        assert logger.level == logging.DEBUG
        logger.handlers = []


class TestProgress:
    def test_success_passes_through(self):
        with progress("Working..."):
            value = 1
        assert value == 1

    def test_failure_reraises(self):
        with pytest.raises(RuntimeError):
            with progress("Working..."):
                raise RuntimeError("boom")
