"""
Tests for structured logging helpers.
"""

import json
import logging

from shared.config.logging import (
    DevelopmentFormatter,
    StructuredFormatter,
    get_logger,
    mask_email,
)


class _Capture(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


def _capture(name: str) -> tuple[logging.Logger, _Capture]:
    logger = get_logger(name)
    handler = _Capture()
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    return logger, handler


def test_mask_email():
    assert mask_email("waiter@example.com") == "wa***@example.com"
    assert mask_email("ab@example.com") == "a***@example.com"
    assert mask_email(None) == "<no-email>"
    assert mask_email("not-an-email") == "***@invalid"


def test_keyword_data_is_attached_to_record():
    logger, handler = _capture("tests.logging.kwargs")
    logger.info("Order created", order_id=12, table_id=3)

    record = handler.records[-1]
    assert record.getMessage() == "Order created"
    assert record.extra_data == {"order_id": 12, "table_id": 3}


def test_json_formatter_output():
    logger, handler = _capture("tests.logging.json")
    logger.warning("Stock below minimum", ingredient_id=4)

    entry = json.loads(StructuredFormatter("rest_api").format(handler.records[-1]))
    assert entry["level"] == "WARNING"
    assert entry["service"] == "rest_api"
    assert entry["msg"] == "Stock below minimum"
    assert entry["data"] == {"ingredient_id": 4}


def test_development_formatter_appends_data():
    logger, handler = _capture("tests.logging.dev")
    logger.error("Broadcast failed", room="kitchen")

    line = DevelopmentFormatter().format(handler.records[-1])
    assert "Broadcast failed" in line
    assert "room=kitchen" in line


def test_disabled_level_is_skipped():
    logger, handler = _capture("tests.logging.level")
    logger.setLevel(logging.WARNING)
    logger.info("ignored", x=1)
    assert handler.records == []
