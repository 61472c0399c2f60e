import asyncio
import atexit
import contextlib
import json
import logging
import logging.handlers
import sys

import pytest

from switchyard.common.core.config import BaseAppConfig
from switchyard.common.core.logging_config import (
    CustomJsonFormatter,
    configure_queue_logging,
    setup_logging,
)
from switchyard.common.core.request_context import (
    clear_request_id,
    get_request_id,
    new_request_id,
    reset_request_id,
    set_request_id,
)


def make_record(msg="Test message", **extra):
    record = logging.LogRecord(
        name="test-logger",
        level=logging.INFO,
        pathname="test.py",
        lineno=10,
        msg=msg,
        args=None,
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@contextlib.contextmanager
def isolated_root_logger():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    root.handlers = []
    try:
        yield root
    finally:
        root.handlers = saved_handlers
        root.setLevel(saved_level)


def test_request_context_basic():
    clear_request_id()
    assert get_request_id() is None

    token = set_request_id("test-id")
    assert get_request_id() == "test-id"

    reset_request_id(token)
    assert get_request_id() is None


def test_new_request_id_does_not_bind():
    clear_request_id()

    first, second = new_request_id(), new_request_id()

    assert first != second
    assert get_request_id() is None


@pytest.mark.asyncio
async def test_request_context_isolation():
    async def task(name, delay):
        set_request_id(name)
        await asyncio.sleep(delay)
        return get_request_id()

    results = await asyncio.gather(task("rid-1", 0.02), task("rid-2", 0.01))
    assert results == ["rid-1", "rid-2"]


def test_custom_json_formatter():
    formatter = CustomJsonFormatter()

    # Without RequestID
    clear_request_id()
    output = json.loads(formatter.format(make_record()))
    assert output["message"] == "Test message"
    assert output["level"] == "INFO"
    assert output["logger"] == "test-logger"
    assert "request_id" not in output

    # With RequestID bound to the context
    token = set_request_id("req-123")
    try:
        output = json.loads(formatter.format(make_record()))
    finally:
        reset_request_id(token)
    assert output["request_id"] == "req-123"


def test_custom_json_formatter_extra_fields():
    formatter = CustomJsonFormatter()

    output = json.loads(formatter.format(make_record(status=200, path="/ping", request_id="explicit")))

    assert output["status"] == 200
    assert output["path"] == "/ping"
    assert output["request_id"] == "explicit"
    assert "lineno" not in output


def test_custom_json_formatter_exception():
    formatter = CustomJsonFormatter()
    try:
        raise ValueError("bad")
    except ValueError:
        record = make_record()
        record.exc_info = sys.exc_info()

    output = json.loads(formatter.format(record))

    assert "ValueError: bad" in output["exception"]


def test_base_app_config_defaults(monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("VERIFY_SSL", raising=False)

    config = BaseAppConfig(_env_file=None)

    assert config.LOG_LEVEL == "INFO"
    assert config.VERIFY_SSL is True
    assert config.LOG_CONFIG_PATH == "config/logging.yml"


def test_base_app_config_reads_environment(monkeypatch):
    monkeypatch.setenv("VERIFY_SSL", "false")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")

    config = BaseAppConfig(_env_file=None)

    assert config.VERIFY_SSL is False
    assert config.LOG_LEVEL == "WARNING"


def test_setup_logging_substitutes_environment(tmp_path):
    config_path = tmp_path / "logging.yml"
    config_path.write_text(
        "version: 1\n"
        "disable_existing_loggers: false\n"
        "loggers:\n"
        "  switchyard.test:\n"
        "    level: ${LOG_LEVEL}\n"
    )

    with isolated_root_logger():
        setup_logging(str(config_path), log_level="ERROR")

    assert logging.getLogger("switchyard.test").level == logging.ERROR


def test_setup_logging_falls_back_without_file(tmp_path):
    with isolated_root_logger() as root:
        setup_logging(str(tmp_path / "missing.yml"), log_level="DEBUG")

        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1


def test_configure_queue_logging_moves_handlers():
    stream_handler = logging.StreamHandler()

    with isolated_root_logger() as root:
        root.addHandler(stream_handler)
        listener = configure_queue_logging()
        try:
            assert listener is not None
            assert stream_handler not in root.handlers
            assert any(isinstance(h, logging.handlers.QueueHandler) for h in root.handlers)
            assert stream_handler in listener.handlers
        finally:
            listener.stop()
            atexit.unregister(listener.stop)


def test_configure_queue_logging_without_handlers():
    with isolated_root_logger():
        assert configure_queue_logging() is None
