import json
import logging

from app.core.logging import CustomJsonFormatter, bind_request_id, level_for, request_id_var, setup_logging


def _format(formatter, message="hello"):
    record = logging.LogRecord("app.test", logging.INFO, __file__, 1, message, None, None)
    return json.loads(formatter.format(record))


def test_json_record_fields():
    formatter = CustomJsonFormatter("%(timestamp) %(level) %(name) %(message)", service="HR", environment="testing")
    payload = _format(formatter)
    assert payload["message"] == "hello"
    assert payload["level"] == "INFO"
    assert payload["name"] == "app.test"
    assert payload["service"] == "HR"
    assert payload["environment"] == "testing"
    assert payload["timestamp"]
    assert "request_id" not in payload


def test_request_id_bound_for_block_only():
    formatter = CustomJsonFormatter("%(message)s")
    with bind_request_id("req-123"):
        assert _format(formatter)["request_id"] == "req-123"
    assert request_id_var.get() == ""


def test_levels_by_environment():
    assert level_for("development") == logging.DEBUG
    assert level_for("testing") == logging.WARNING
    assert level_for("production") == logging.INFO


def test_setup_logging_is_idempotent():
    setup_logging("testing", "HR")
    setup_logging("testing", "HR")
    root = logging.getLogger()
    json_handlers = [h for h in root.handlers if isinstance(h.formatter, CustomJsonFormatter)]
    assert len(json_handlers) == 1
    assert root.level == logging.WARNING
