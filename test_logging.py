#!/usr/bin/env python3
"""Test script for the thread-aware log formatter and log context."""

import logging
import threading

import pytest

from mqtt_conduit.logging import (
    LogConfig,
    LogLevel,
    ThreadAwareFormatter,
    get_log_context,
    log_context,
    setup_logging,
)


def _record(message: str) -> logging.LogRecord:
    return logging.LogRecord("mqtt_conduit.test", logging.INFO, __file__, 10, message, None, None, "fn")


def test_formatter_includes_thread_and_context():
    formatter = ThreadAwareFormatter()
    with log_context(operation="publish", topic="sensors/temp"):
        line = formatter.format(_record("Issuing publish"))

    assert threading.current_thread().name in line
    assert "Issuing publish {operation=publish topic=sensors/temp}" in line


def test_formatter_without_context():
    line = ThreadAwareFormatter().format(_record("plain"))
    assert line.endswith("plain")


def test_log_context_nests_and_restores():
    with log_context(operation="subscribe"):
        with log_context(topic="a/b"):
            assert get_log_context() == {"operation": "subscribe", "topic": "a/b"}
        assert get_log_context() == {"operation": "subscribe"}
    assert get_log_context() == {}


def test_log_context_is_thread_local():
    seen = {}

    def other():
        seen["context"] = get_log_context()

    with log_context(operation="connect"):
        thread = threading.Thread(target=other)
        thread.start()
        thread.join()

    assert seen["context"] == {}


def test_log_config_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("MQTT_CONDUIT_LOG_LEVEL", "debug")
    monkeypatch.setenv("MQTT_CONDUIT_LOG_FILE", str(tmp_path / "logs" / "conduit.log"))

    config = LogConfig.from_env()

    assert config.level == LogLevel.DEBUG
    assert config.log_file == tmp_path / "logs" / "conduit.log"


def test_setup_logging_package_only(tmp_path):
    log_file = tmp_path / "logs" / "conduit.log"
    setup_logging(LogConfig(level=LogLevel.DEBUG, log_file=log_file, console_output=False, package_only=True))
    package_logger = logging.getLogger("mqtt_conduit")
    try:
        logging.getLogger("mqtt_conduit.mqtt.bridge").debug("hello from the bridge")
        for handler in package_logger.handlers:
            handler.flush()
        assert "hello from the bridge" in log_file.read_text()
    finally:
        for handler in list(package_logger.handlers):
            handler.close()
            package_logger.removeHandler(handler)
        package_logger.setLevel(logging.NOTSET)


if __name__ == "__main__":
    raise SystemExit(pytest.main([__file__, "-v"]))
