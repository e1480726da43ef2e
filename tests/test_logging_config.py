"""
Tests for structured logging configuration.
"""

import json
import logging

from flexreviews.logging_config import JSONFormatter, setup_logging


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_basic_fields(self):
        record = logging.LogRecord("flexreviews.data", logging.WARNING, __file__, 1, "fallback used", None, None)
        entry = json.loads(JSONFormatter().format(record))

        assert entry["level"] == "WARNING"
        assert entry["logger"] == "flexreviews.data"
        assert entry["msg"] == "fallback used"

    def test_extra_fields(self):
        record = logging.LogRecord("flexreviews", logging.INFO, __file__, 1, "fetched", None, None)
        record.source = "hostaway"
        record.count = 10

        entry = json.loads(JSONFormatter().format(record))

        assert entry["source"] == "hostaway"
        assert entry["count"] == 10
        assert "listing_id" not in entry


class TestSetupLogging:
    """Tests for setup_logging()."""

    def teardown_method(self):
        root = logging.getLogger()
        for handler in list(root.handlers):
            handler.close()
            root.removeHandler(handler)
        root.setLevel(logging.WARNING)

    def test_file_output(self, tmp_path):
        log_file = tmp_path / "logs" / "flexreviews.log"
        setup_logging(level="DEBUG", json_output=True, log_file=str(log_file))

        logging.getLogger("flexreviews.test").info("hello", extra={"review_id": "7453"})
        for handler in logging.getLogger().handlers:
            handler.flush()

        lines = [json.loads(line) for line in log_file.read_text().splitlines()]
        assert any(l["msg"] == "hello" and l["review_id"] == "7453" for l in lines)
        assert logging.getLogger().level == logging.DEBUG

    def test_text_format_and_quiet_loggers(self, tmp_path):
        log_file = tmp_path / "flexreviews.log"
        setup_logging(level="INFO", log_file=str(log_file), fmt="%(levelname)s|%(message)s")

        logging.getLogger("flexreviews.test").warning("mock fallback")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "WARNING|mock fallback" in log_file.read_text().splitlines()
        assert logging.getLogger("urllib3").level == logging.WARNING
