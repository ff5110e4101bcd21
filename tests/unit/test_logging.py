"""
Unit tests for the logging helpers.
"""

import io
import json
import logging

import pytest

from workspace_api.core.logging import (
    PACKAGE_LOGGER_NAME,
    HumanReadableFormatter,
    StructuredFormatter,
    configure_logging,
    get_logger,
)


def make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="workspace_api.v1.mock_client",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Delaying %s",
        args=("stat",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def package_logger():
    logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    saved_handlers = list(logger.handlers)
    saved_level = logger.level
    for handler in saved_handlers:
        logger.removeHandler(handler)
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    for handler in saved_handlers:
        logger.addHandler(handler)
    logger.setLevel(saved_level)


class TestFormatters:
    """Tests for the structured and human-readable formatters."""

    def test_structured_includes_context(self):
        formatter = StructuredFormatter(include_timestamp=False)

        data = json.loads(formatter.format(make_record(call_id="abc", operation="stat", delay_ms=12)))

        assert data["message"] == "Delaying stat"
        assert data["level"] == "INFO"
        assert data["call_id"] == "abc"
        assert data["delay_ms"] == 12
        assert "path" not in data
        assert "timestamp" not in data

    def test_structured_timestamp(self):
        data = json.loads(StructuredFormatter().format(make_record()))

        assert data["timestamp"].endswith("+00:00")

    def test_human_readable_context(self):
        formatter = HumanReadableFormatter(include_timestamp=False)

        line = formatter.format(make_record(call_id="abc", path="sub/b.txt"))

        assert line == "workspace_api.v1.mock_client - INFO - Delaying stat [call_id=abc path=sub/b.txt]"

    def test_human_readable_without_context(self):
        line = HumanReadableFormatter(include_timestamp=False).format(make_record())

        assert line.endswith("Delaying stat")


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_adds_single_handler(self, package_logger):
        stream = io.StringIO()

        configure_logging(level=logging.DEBUG, stream=stream)
        configure_logging(level=logging.INFO, stream=stream)

        assert len(package_logger.handlers) == 1
        assert package_logger.level == logging.INFO

    def test_structured_output(self, package_logger):
        stream = io.StringIO()
        configure_logging(level=logging.INFO, structured=True, stream=stream)

        get_logger("workspace_api.test").info("hello", extra={"operation": "stat"})

        data = json.loads(stream.getvalue())
        assert data["message"] == "hello"
        assert data["operation"] == "stat"

    def test_get_logger_level(self):
        logger = get_logger("workspace_api.level_test", level=logging.ERROR)

        assert logger.level == logging.ERROR
