# linereplay/utils.py
from __future__ import annotations

import atexit
import logging
import os
import queue
import sys
from logging.handlers import QueueHandler, QueueListener, TimedRotatingFileHandler
from pathlib import Path
from typing import Optional, Union

__all__ = ["setup", "get_logger", "log", "LOG_NAME"]

LOG_NAME = "linereplay"
log = logging.getLogger(LOG_NAME)
log.addHandler(logging.NullHandler())
log.setLevel(logging.INFO)

_listener: Optional[QueueListener] = None
_configured = False


def _normalize_level(level: Union[int, str]) -> int:
    if isinstance(level, str):
        value = logging.getLevelName(level.upper())
        return value if isinstance(value, int) else logging.INFO
    return level


def setup(
    log_dir: Optional[Union[str, os.PathLike]] = None,
    level: Union[int, str] = "INFO",
    console: bool = True,
    filename: str = "linereplay.log",
    rotate_when: str = "midnight",
    rotate_backup: int = 7,
    encoding: str = "utf-8",
) -> logging.Logger:
    """
    Configure queue-backed logging. Call once at program start.
    - log_dir=None logs to stderr only; a directory adds a daily rotated file
      keeping rotate_backup old copies.
    - level accepts "DEBUG"/"INFO"/"WARNING"/"ERROR" or a logging constant.
    """
    global _listener, _configured

    if _configured:
        return log

    level = _normalize_level(level)
    log.setLevel(level)
    log.propagate = False

    fmt = "[%(asctime)s] %(levelname).1s %(threadName)s %(name)s: %(message)s"
    formatter = logging.Formatter(fmt=fmt, datefmt="%Y-%m-%d %H:%M:%S")

    handlers = []
    if console:
        h = logging.StreamHandler(sys.stderr)
        h.setFormatter(formatter)
        h.setLevel(level)
        handlers.append(h)

    if log_dir is not None:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            filename=str(log_path / filename),
            when=rotate_when,
            backupCount=rotate_backup,
            encoding=encoding,
            delay=True,
        )
        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)
        handlers.append(file_handler)

    # the sending thread only enqueues; handler I/O happens on the listener thread
    q: queue.SimpleQueue = queue.SimpleQueue()
    qh = QueueHandler(q)
    qh.setLevel(level)

    for old in list(log.handlers):
        log.removeHandler(old)
        old.close()
    log.addHandler(qh)

    _listener = QueueListener(q, *handlers, respect_handler_level=True)
    _listener.start()
    atexit.register(shutdown)

    _configured = True
    return log


def shutdown() -> None:
    """Drain queued records and stop the listener thread."""
    global _listener
    if _listener is not None:
        _listener.stop()
        _listener = None


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a child logger: get_logger("pipeline") -> linereplay.pipeline
    Child records propagate into the package logger's queue handler.
    """
    if not name:
        return log
    return logging.getLogger(f"{LOG_NAME}.{name}")
