"""
Tests for dealfinder/utils/logging.py.

What we test
------------
  - _JsonFormatter emits ts / level / logger / msg plus ``extra=`` fields.
  - Credential-like extras are masked; empty ones are left alone.
  - configure_logging() sets the root level and writes to ``log_file``,
    creating parent directories.
"""

from __future__ import annotations

import json
import logging

import pytest

from dealfinder.config import LoggingConfig
from dealfinder.utils.logging import _JsonFormatter, configure_logging


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_json_formatter():
    record = logging.LogRecord("dealfinder.pipeline", logging.WARNING, __file__, 1, "run %s", ("abc",), None)
    record.run_id = "abc"
    payload = json.loads(_JsonFormatter().format(record))
    assert payload["level"] == "WARNING"
    assert payload["logger"] == "dealfinder.pipeline"
    assert payload["msg"] == "run abc"
    assert payload["run_id"] == "abc"
    assert payload["ts"].endswith("Z")


def test_json_formatter_masks_secrets():
    record = logging.LogRecord("dealfinder.explain", logging.INFO, __file__, 1, "call", None, None)
    record.api_key = "sk-live-123"
    record.Authorization = "Bearer abc"
    record.access_token = ""
    record.model = "explainer-small"
    payload = json.loads(_JsonFormatter().format(record))
    assert payload["api_key"] == "***"
    assert payload["Authorization"] == "***"
    assert payload["access_token"] == ""
    assert payload["model"] == "explainer-small"
    assert "sk-live-123" not in json.dumps(payload)


def test_configure_logging_file(tmp_path):
    log_file = tmp_path / "logs" / "dealfinder.log"
    configure_logging(LoggingConfig(level="DEBUG", log_file=str(log_file), json_format=True))

    logging.getLogger("dealfinder.test").debug("hello %d", 7)
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert logging.getLogger().level == logging.DEBUG
    line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
    assert json.loads(line)["msg"] == "hello 7"


def test_third_party_loggers_quietened():
    configure_logging(LoggingConfig(level="DEBUG"))
    assert logging.getLogger("httpx").level == logging.WARNING
