"""
Unit tests for console logging and the JSONL audit reader.
"""

import json
import logging

import pytest

from draftsmith.utils.logging_config import ROOT_LOGGER_NAME, ColoredFormatter, LogLevel, setup_logging
from draftsmith.utils.structured_log import load_events_from_jsonl, log_job_event


@pytest.fixture(autouse=True)
def _restore_logger():
    yield
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


class TestSetupLogging:
    """Test setup_logging."""

    def test_levels(self):
        assert setup_logging(LogLevel.MINIMAL).level == logging.WARNING
        assert setup_logging(LogLevel.NORMAL).level == logging.INFO
        assert setup_logging(LogLevel.NORMAL, verbose=True).level == logging.DEBUG
        assert setup_logging("detailed").level == logging.DEBUG

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "nested" / "draftsmith.log"

        logger = setup_logging(LogLevel.NORMAL, log_to_file=True, log_file=str(log_file))

        assert len(logger.handlers) == 2
        assert log_file.parent.exists()

    def test_colored_formatter_leaves_record_intact(self):
        record = logging.LogRecord("draftsmith", logging.WARNING, __file__, 1, "careful", None, None)

        formatted = ColoredFormatter("%(levelname)s | %(message)s").format(record)

        assert "careful" in formatted
        assert record.levelname == "WARNING"


class TestLoadEvents:
    """Test load_events_from_jsonl."""

    def test_filters_by_draft_and_skips_bad_lines(self, tmp_path):
        path = tmp_path / "app.jsonl"
        lines = [
            json.dumps({"event": "job", "draft_id": "d1", "action": "claim"}),
            "{not json",
            "",
            json.dumps({"event": "job", "draft_id": "d2", "action": "claim"}),
            json.dumps({"event": "transition", "draft_id": "d1", "to_status": "OUTLINE_APPROVED"}),
        ]
        path.write_text("\n".join(lines) + "\n")

        assert len(load_events_from_jsonl(str(path))) == 3
        events = load_events_from_jsonl(str(path), draft_id="d1")
        assert [e["event"] for e in events] == ["job", "transition"]

    def test_missing_file(self, tmp_path):
        assert load_events_from_jsonl(str(tmp_path / "none.jsonl")) == []

    def test_event_helpers_are_safe_before_configuration(self):
        log_job_event("strategy", "claim", job_id=1)
