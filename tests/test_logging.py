import json
import logging

from app.logging_config import JSONFormatter, setup_logging


def _record(**kwargs) -> logging.LogRecord:
    record = logging.LogRecord("receipts", logging.WARNING, __file__, 1, "Total price mismatch", None, None)
    for key, value in kwargs.items():
        setattr(record, key, value)
    return record


def test_json_formatter_merges_extra_data() -> None:
    line = JSONFormatter().format(_record(extra_data={"calculated_total": 17.99, "reported_total": 20.0}))
    entry = json.loads(line)
    assert entry["level"] == "WARNING"
    assert entry["logger"] == "receipts"
    assert entry["message"] == "Total price mismatch"
    assert entry["calculated_total"] == 17.99
    assert entry["timestamp"].endswith("Z")


def test_setup_logging_installs_one_handler() -> None:
    logger = setup_logging("WARNING")
    setup_logging("WARNING")
    json_handlers = [h for h in logger.handlers if isinstance(h.formatter, JSONFormatter)]
    assert len(json_handlers) == 1
    assert logger.level == logging.WARNING
