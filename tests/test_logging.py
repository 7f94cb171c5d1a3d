"""Tests for structured logging."""

from __future__ import annotations

import json
import logging
import logging.handlers
import os
from pathlib import Path

from ticketcli.logging import setup_logging


def _records(path: Path) -> list[dict[str, object]]:
    return [json.loads(line) for line in path.read_text().splitlines()]


class TestSetupLogging:
    def test_creates_log_file(self, tmp_path: Path) -> None:
        logger = setup_logging(tmp_path)
        logger.info("test_message", extra={"method": "GET", "url": "https://tracker.test/x", "status": 200})
        # Flush handlers
        for handler in logger.handlers:
            handler.flush()
        log_path = tmp_path / "ticketcli.log"
        assert log_path.exists()
        record = _records(log_path)[0]
        assert record["msg"] == "test_message"
        assert record["logger"] == "ticketcli"
        assert record["method"] == "GET"
        assert record["status"] == 200

    def test_json_format(self, tmp_path: Path) -> None:
        logger = setup_logging(tmp_path)
        logger.info("formatted", extra={"duration_ms": 42.5})
        for handler in logger.handlers:
            handler.flush()
        record = _records(tmp_path / "ticketcli.log")[-1]
        assert record["duration_ms"] == 42.5
        assert "url" not in record

    def test_exception_recorded(self, tmp_path: Path) -> None:
        logger = setup_logging(tmp_path)
        try:
            raise ValueError("bad payload")
        except ValueError:
            logger.exception("submit failed")
        for handler in logger.handlers:
            handler.flush()
        assert _records(tmp_path / "ticketcli.log")[-1]["exception"] == "bad payload"

    def test_child_loggers_propagate(self, tmp_path: Path) -> None:
        logger = setup_logging(tmp_path)
        logging.getLogger("ticketcli.client").info("from child")
        for handler in logger.handlers:
            handler.flush()
        assert _records(tmp_path / "ticketcli.log")[-1]["logger"] == "ticketcli.client"

    def test_debug_dropped_unless_verbose(self, tmp_path: Path) -> None:
        logger = setup_logging(tmp_path)
        logger.debug("hidden")
        assert logger.level == logging.INFO
        for handler in logger.handlers:
            handler.flush()
        assert not (tmp_path / "ticketcli.log").read_text()

    def test_idempotent_setup(self, tmp_path: Path) -> None:
        logger1 = setup_logging(tmp_path)
        logger2 = setup_logging(tmp_path)
        assert logger1 is logger2
        assert len(logger1.handlers) == 1

    def test_new_dir_replaces_handler(self, tmp_path: Path) -> None:
        setup_logging(tmp_path / "a")
        logger = setup_logging(tmp_path / "b")
        assert len(logger.handlers) == 1
        handler = logger.handlers[0]
        assert isinstance(handler, logging.handlers.RotatingFileHandler)
        assert handler.baseFilename == os.path.abspath(str(tmp_path / "b" / "ticketcli.log"))

    def test_no_duplicate_handlers_via_symlink(self, tmp_path: Path) -> None:
        real_dir = tmp_path / "real"
        real_dir.mkdir()
        link_dir = tmp_path / "link"
        os.symlink(str(real_dir), str(link_dir))
        logger1 = setup_logging(link_dir)
        logger2 = setup_logging(link_dir)
        assert logger1 is logger2
        assert len(logger1.handlers) == 1

    def test_no_duplicate_handlers_under_concurrency(self, tmp_path: Path) -> None:
        """Concurrent setup_logging calls must not produce duplicate handlers."""
        import threading

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
        logger = logging.getLogger("ticketcli")
        file_handlers = [
            h
            for h in logger.handlers
            if isinstance(h, logging.handlers.RotatingFileHandler)
            and h.baseFilename == os.path.abspath(str(tmp_path / "ticketcli.log"))
        ]
        assert len(file_handlers) == 1, f"Expected 1 handler, got {len(file_handlers)}"

    def test_verbose_adds_single_console_handler(self) -> None:
        logger = setup_logging(verbose=True)
        setup_logging(verbose=True)
        consoles = [h for h in logger.handlers if type(h) is logging.StreamHandler]
        assert len(consoles) == 1
        assert logger.level == logging.DEBUG

    def test_no_dir_no_file_handler(self) -> None:
        logger = setup_logging()
        assert not any(isinstance(h, logging.handlers.RotatingFileHandler) for h in logger.handlers)
