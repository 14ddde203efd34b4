# tests/test_logging_config.py

"""Tests for the per-run log file used by batch and API runs."""

import logging
import tempfile
import threading
import unittest
from pathlib import Path
from unittest.mock import patch

from src.config.logging_config import setup_logging
from src.config.settings import Settings


def _reset_project_logger() -> None:
    root_logger = logging.getLogger("price_watch")
    for handler in list(root_logger.handlers):
        handler.close()
        root_logger.removeHandler(handler)


class TestRunLogFile(unittest.TestCase):
    """What a run leaves behind in logs/."""

    def setUp(self) -> None:
        _reset_project_logger()
        self.logs_dir = Path(tempfile.mkdtemp()) / "logs"
        patcher = patch.object(Settings, "LOGS_DIR", self.logs_dir)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.addCleanup(_reset_project_logger)

    def _read_log(self, log_path: Path) -> str:
        for handler in logging.getLogger("price_watch").handlers:
            handler.flush()
        return log_path.read_text(encoding="utf-8")

    def test_log_file_created_under_logs_dir(self) -> None:
        log_path = setup_logging()
        self.assertTrue(log_path.exists())
        self.assertEqual(log_path.parent, self.logs_dir)
        self.assertRegex(log_path.name, r"^run_\d{8}_\d{6}\.log$")

    def test_file_format_carries_thread_name(self) -> None:
        """Scrape workers are told apart by thread name."""
        setup_logging()
        file_handlers = [
            h
            for h in logging.getLogger("price_watch").handlers
            if isinstance(h, logging.FileHandler)
        ]
        self.assertEqual(len(file_handlers), 1)
        formatter = file_handlers[0].formatter
        assert formatter is not None
        self.assertIn("%(threadName)s", formatter._fmt or "")

    def test_child_logger_records_reach_run_file(self) -> None:
        """An orchestrator INFO line lands in the file, not on stderr."""
        log_path = setup_logging()
        logging.getLogger("price_watch.orchestrator").info(
            "Batch run started: %d trackers, %d listings", 2, 5,
        )
        contents = self._read_log(log_path)
        self.assertIn("Batch run started: 2 trackers, 5 listings", contents)
        self.assertIn("price_watch.orchestrator", contents)
        self.assertIn("MainThread", contents)

    def test_worker_thread_name_logged(self) -> None:
        """Records from worker threads carry that thread's name."""
        log_path = setup_logging()

        def work() -> None:
            logging.getLogger("price_watch.updater").warning(
                "Listing %d: PRICE_DROP", 7,
            )

        worker = threading.Thread(target=work, name="scrape-worker-1")
        worker.start()
        worker.join()

        contents = self._read_log(log_path)
        line = next(
            ln for ln in contents.splitlines() if "PRICE_DROP" in ln
        )
        self.assertIn("scrape-worker-1", line)
        self.assertIn("price_watch.updater", line)

    def test_repeated_setup_keeps_one_file_handler(self) -> None:
        """Tests and the API server may call setup more than once."""
        setup_logging()
        setup_logging()
        handlers = logging.getLogger("price_watch").handlers
        self.assertEqual(
            sum(isinstance(h, logging.FileHandler) for h in handlers), 1,
        )


if __name__ == "__main__":
    unittest.main()
