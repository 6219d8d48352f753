import io
import json
import logging

import pytest
import structlog

from tileserver.utils.logs import LoggingUtils


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def test_root_handler_uses_structlog_formatter():
    LoggingUtils.setup_logging_with_default_formatter(loglevel="debug")

    root = logging.getLogger()
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, structlog.stdlib.ProcessorFormatter)
    assert root.level == logging.DEBUG


def test_existing_loggers_propagate_to_root():
    uvicorn_logger = logging.getLogger("uvicorn.error")
    uvicorn_logger.addHandler(logging.NullHandler())
    uvicorn_logger.propagate = False

    LoggingUtils.setup_logging_with_default_formatter()

    assert uvicorn_logger.handlers == []
    assert uvicorn_logger.propagate


def test_stdlib_records_are_rendered_as_json():
    stream = io.StringIO()
    LoggingUtils.setup_logging_with_default_formatter(
        loglevel="INFO", json_format=True, stream=stream
    )

    logging.getLogger("tileserver.store").info("Generated tiles for photo")
    logging.getLogger("tileserver.store").debug("not shown")

    lines = stream.getvalue().splitlines()
    assert len(lines) == 1
    entry = json.loads(lines[0])
    assert entry["event"] == "Generated tiles for photo"
    assert entry["level"] == "info"
    assert entry["logger"] == "tileserver.store"
    assert "timestamp" in entry


def test_console_rendering_includes_logger_name():
    stream = io.StringIO()
    LoggingUtils.setup_logging_with_default_formatter(stream=stream)

    logging.getLogger("tileserver.routes").warning("Upload rejected")

    output = stream.getvalue()
    assert "Upload rejected" in output
    assert "tileserver.routes" in output
    assert "warning" in output
