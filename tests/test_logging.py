"""Tests for logging setup and formatters."""

import json
import logging

from transferstate.logging import (
    CompactFormatter,
    JSONFormatter,
    StoreLogger,
    get_logger,
    setup_logging,
)


def _record(msg: str = "hello", level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord("transferstate.test", level, __file__, 1, msg, None, None)


class TestFormatters:
    def test_json_formatter_emits_fields(self):
        record = _record()
        record.collection = "things"
        data = json.loads(JSONFormatter().format(record))
        assert data["message"] == "hello"
        assert data["level"] == "INFO"
        assert data["collection"] == "things"

    def test_compact_formatter_uses_symbol(self):
        assert "⚠ careful" in CompactFormatter().format(_record("careful", logging.WARNING))


class TestSetup:
    def teardown_method(self):
        logging.getLogger("transferstate").handlers = []

    def test_get_logger_prefixes_name(self):
        assert get_logger("persistence").name == "transferstate.persistence"
        assert get_logger("transferstate.cli").name == "transferstate.cli"

    def test_setup_logging_with_file(self, tmp_path):
        log_file = tmp_path / "store.log"
        setup_logging(level="DEBUG", log_file=str(log_file))
        root = logging.getLogger("transferstate")
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 2

        StoreLogger("persistence").anomaly("things", "k1", "bad json")
        for handler in root.handlers:
            handler.flush()
        line = json.loads(log_file.read_text().splitlines()[-1])
        assert line["level"] == "WARNING"
        assert "k1" in line["message"]
        assert line["collection"] == "things"
        assert line["key"] == "k1"

    def test_store_operations_carry_collection_and_key(self, tmp_path):
        log_file = tmp_path / "store.log"
        setup_logging(level="DEBUG", log_file=str(log_file))

        store_logger = StoreLogger("persistence")
        store_logger.stored("things", "[k2]")
        store_logger.removed("things", None)
        for handler in logging.getLogger("transferstate").handlers:
            handler.flush()

        stored, removed = (json.loads(line) for line in log_file.read_text().splitlines()[-2:])
        assert (stored["collection"], stored["key"]) == ("things", "[k2]")
        assert (removed["collection"], removed["key"]) == ("things", None)
