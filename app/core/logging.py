"""Logging configuration."""

import logging
import os
from typing import Optional

# Chatty third-party loggers kept at WARNING unless LOG_LEVEL is DEBUG
_NOISY_LOGGERS = ("httpx", "httpcore", "temporalio.activity")


def setup_logging(level: Optional[str] = None) -> None:
    """Configure application logging."""
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    if level != "DEBUG":
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
