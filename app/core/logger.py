import logging
import os
from logging.handlers import TimedRotatingFileHandler
from typing import Dict, Optional

from app.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DEFAULT_LOG_FILE = "gitea_notifs.log"

# One handler per file, shared by every module logger writing to it
_file_handlers: Dict[str, logging.Handler] = {}
_console_handler: Optional[logging.Handler] = None


def _get_file_handler(log_file: str) -> logging.Handler:
    path = os.path.join(settings.LOG_DIR, log_file)
    if path not in _file_handlers:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        handler = TimedRotatingFileHandler(
            path,
            when="H",
            backupCount=settings.LOG_RETENTION_HOURS,
            encoding="utf-8",
        )
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        _file_handlers[path] = handler
    return _file_handlers[path]


def _get_console_handler() -> logging.Handler:
    global _console_handler
    if _console_handler is None:
        _console_handler = logging.StreamHandler()
        _console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return _console_handler


def get_module_logger(module_name: str, log_file: str = DEFAULT_LOG_FILE):
    logger = logging.getLogger(module_name)
    logger.setLevel(settings.LOG_LEVEL)

    # Prevent adding multiple handlers if logger is called multiple times
    if not logger.handlers:
        logger.addHandler(_get_file_handler(log_file))
        logger.addHandler(_get_console_handler())
        logger.propagate = False
    return logger
