"""Tests for structured logging formatters and setup."""
from __future__ import annotations

import json
import logging

from rangeconfig.config import settings
from rangeconfig.logging_config import (
    RangeJSONFormatter,
    RangeTextFormatter,
    correlation_id_var,
    generate_correlation_id,
    setup_logging,
)


def _record(msg="hello", **extra):
    record = logging.LogRecord("rangeconfig.test", logging.INFO, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_fields():
    payload = json.loads(RangeJSONFormatter("server").format(_record(mac="00:16:3e:00:00:01")))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "rangeconfig.test"
    assert payload["message"] == "hello"
    assert payload["service"] == "server"
    assert payload["extra"] == {"mac": "00:16:3e:00:00:01"}
    assert "correlation_id" not in payload


def test_json_formatter_includes_correlation_id():
    token = correlation_id_var.set("cid42")
    try:
        payload = json.loads(RangeJSONFormatter("server").format(_record()))
    finally:
        correlation_id_var.reset(token)

    assert payload["correlation_id"] == "cid42"


def test_json_formatter_includes_exception():
    try:
        raise ValueError("bad")
    except ValueError:
        import sys

        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())

    payload = json.loads(RangeJSONFormatter("server").format(record))

    assert "ValueError: bad" in payload["exception"]


def test_text_formatter_layout():
    line = RangeTextFormatter("client-linux").format(_record())

    assert "INFO" in line
    assert "[client-linux]" in line
    assert line.endswith("rangeconfig.test: hello")


def test_generate_correlation_id_is_short_hex():
    cid = generate_correlation_id()

    assert len(cid) == 12
    int(cid, 16)


def test_setup_logging_adds_file_handler(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "log_format", "text")
    log_file = tmp_path / "config.log"
    root = logging.getLogger()
    saved = list(root.handlers), root.level
    try:
        setup_logging("client-linux", log_file=str(log_file))
        logging.getLogger("rangeconfig.test").info("written to file")
        for handler in root.handlers:
            handler.flush()

        assert "written to file" in log_file.read_text()
        assert any(isinstance(h, logging.FileHandler) for h in root.handlers)
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        for handler in saved[0]:
            root.addHandler(handler)
        root.setLevel(saved[1])
