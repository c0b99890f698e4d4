import json
import logging
import signal

import pytest

from serverctl.observability.logging import _JsonFormatter, configure_logging, resolve_level


@pytest.mark.parametrize(
    ("value", "expected"),
    [("debug", logging.DEBUG), (" INFO ", logging.INFO), ("loud", logging.WARNING), ("", logging.WARNING)],
)
def test_resolve_level_from_environment(monkeypatch, value, expected):
    monkeypatch.setenv("SERVERCTL_LOG_LEVEL", value)
    assert resolve_level(None) == expected


def test_explicit_level_wins_over_environment(monkeypatch):
    monkeypatch.setenv("SERVERCTL_LOG_LEVEL", "ERROR")
    assert resolve_level("DEBUG") == logging.DEBUG


def test_configure_logging_only_adjusts_level_after_first_call():
    logger = configure_logging("DEBUG")
    handlers = list(logger.handlers)
    assert configure_logging("ERROR") is logger
    assert logger.level == logging.ERROR
    assert logger.handlers == handlers
    configure_logging(None)


def test_event_fields_become_json_keys():
    record = logging.LogRecord("serverctl.controller", logging.INFO, __file__, 1, "terminated", None, None)
    record.event = "terminated"
    record.server_pid = 42
    record.signal = signal.SIGTERM

    payload = json.loads(_JsonFormatter().format(record))
    assert payload["event"] == "terminated"
    assert payload["server_pid"] == 42
    assert payload["signal"] == str(signal.SIGTERM)
    assert payload["logger"] == "serverctl.controller"
    assert payload["level"] == "INFO"
