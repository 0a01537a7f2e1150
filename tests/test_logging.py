# tests/test_logging.py
import logging
from logging.handlers import RotatingFileHandler

import pytest

from platestream.LoggingSetup import setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_creates_log_file_and_writes_messages(tmp_path):
    setup_logging(tmp_path / "logs", verbose=False, log_name="server.log", console=False)
    logging.getLogger("platestream.test").info("hello %s", "world")

    content = (tmp_path / "logs" / "server.log").read_text(encoding="utf-8")
    assert "[INFO] hello world" in content


def test_rotating_handler_limits(tmp_path):
    setup_logging(tmp_path, console=False)

    handlers = [h for h in logging.getLogger().handlers if isinstance(h, RotatingFileHandler)]
    assert len(handlers) == 1
    assert handlers[0].maxBytes == 10 * 1024 * 1024
    assert handlers[0].backupCount == 5


def test_verbose_sets_debug_but_websockets_stays_at_info(tmp_path):
    setup_logging(tmp_path, verbose=True, console=False)

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("websockets").level == logging.INFO


def test_console_handler_added_by_default(tmp_path):
    setup_logging(tmp_path)
    stream_handlers = [h for h in logging.getLogger().handlers
                       if type(h) is logging.StreamHandler]
    assert len(stream_handlers) == 1
