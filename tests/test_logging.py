"""Ensure logging setup does not crash and sets level."""

import logging

from app.core.logging import setup_logging


def test_setup_logging():
    setup_logging()
    logger = logging.getLogger()
    # Should configure without raising; ensure at least one handler attached
    assert logger.handlers


def test_noisy_loggers_quieted():
    setup_logging("INFO")
    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("temporalio.activity").level == logging.WARNING
