from __future__ import annotations

import json
import logging

from addresspoint.log import JsonLineFormatter, configure_logging


def test_json_line_formatter_includes_extras():
    record = logging.LogRecord("addresspoint.service", logging.INFO, __file__, 1, "index ready: %d points", (3,), None)
    record.event = "index_built"
    record.rows_out = 3
    payload = json.loads(JsonLineFormatter().format(record))
    assert payload["level"] == "INFO"
    assert payload["logger"] == "addresspoint.service"
    assert payload["message"] == "index ready: 3 points"
    assert payload["event"] == "index_built"
    assert payload["rows_out"] == 3
    assert "error_code" not in payload


def test_configure_logging_is_idempotent():
    configure_logging("info")
    logger = configure_logging("warning", json_lines=False)
    assert logger.name == "addresspoint"
    assert logger.level == logging.WARNING
    assert len(logger.handlers) == 1
    assert not isinstance(logger.handlers[0].formatter, JsonLineFormatter)
