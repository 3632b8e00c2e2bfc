# result_portal/core/logger.py
import logging
import os
import sys

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_logger = logging.getLogger("result_portal")
if not _logger.handlers:
    _logger.setLevel(os.getenv("RESULT_PORTAL_LOG_LEVEL", "INFO").upper())
    _handler = logging.StreamHandler(sys.stdout)
    _handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    _logger.addHandler(_handler)


def get_logger(name: str | None = None) -> logging.Logger:
    if name:
        return _logger.getChild(name)
    return _logger


def set_level(level: str | int) -> None:
    if isinstance(level, str):
        level = level.upper()
    _logger.setLevel(level)
