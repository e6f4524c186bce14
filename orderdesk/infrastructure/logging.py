"""
Service loggers.

Each module asks `get_logger(__name__)` for its logger. Loggers write
LOG_FORMAT lines to stderr at the level named by LOG_LEVEL and do not
propagate, so API and test runners see every line exactly once.
`configure_logging` re-levels the loggers already handed out; the API
calls it at startup with the loaded settings.
"""
import logging
from typing import Dict, Optional, Union

from orderdesk.settings.modules.logging_settings import LoggingSettings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_loggers: Dict[str, logging.Logger] = {}
_level: Optional[int] = None


def parse_level(level: Union[str, int]) -> int:
    """'debug', 'INFO' or 20 -> logging level number."""
    if isinstance(level, int):
        return level
    number = logging.getLevelName(str(level).strip().upper())
    if not isinstance(number, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return number


def configure_logging(level: Union[str, int, None] = None) -> int:
    """Set the level for every service logger; None reads LOG_LEVEL again."""
    global _level
    _level = parse_level(level if level is not None else LoggingSettings().level)
    for logger in _loggers.values():
        logger.setLevel(_level)
    return _level


def get_logger(name: str) -> logging.Logger:
    if name in _loggers:
        return _loggers[name]

    if _level is None:
        configure_logging()

    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(_level)
    logger.propagate = False
    _loggers[name] = logger
    return logger
