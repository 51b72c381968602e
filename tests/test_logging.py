import logging

import pytest

from instagrab.utils.config import APP_NAME
from instagrab.utils.logging import NOISY_LOGGERS, get_logger, setup_logging


@pytest.fixture()
def app_logger():
    """Application logger with its handlers detached for the test."""
    logger = logging.getLogger(APP_NAME)
    saved = list(logger.handlers)
    logger.handlers.clear()
    yield logger
    for handler in logger.handlers:
        handler.close()
    logger.handlers[:] = saved


def test_module_loggers_share_the_app_hierarchy(app_logger, tmp_path):
    log_file = tmp_path / "logs" / "instagrab.log"
    setup_logging(level=logging.WARNING, log_file=log_file)

    get_logger("instagrab.core.scraper").debug("fallback to browser")
    for handler in app_logger.handlers:
        handler.flush()

    assert "fallback to browser" in log_file.read_text(encoding="utf-8")
    assert "instagrab.core.scraper" in log_file.read_text(encoding="utf-8")


def test_setup_logging_is_idempotent(app_logger, tmp_path):
    log_file = tmp_path / "instagrab.log"

    first = setup_logging(log_file=log_file)
    second = setup_logging(log_file=tmp_path / "other.log")

    assert first is second is app_logger
    assert len(app_logger.handlers) == 2
    assert not (tmp_path / "other.log").exists()


def test_library_chatter_is_quieted(app_logger, tmp_path):
    setup_logging(log_file=tmp_path / "instagrab.log")

    for name in NOISY_LOGGERS:
        assert logging.getLogger(name).level == logging.WARNING
