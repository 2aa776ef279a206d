"""Logging setup and the message stream shown in the log panel."""

from __future__ import annotations

import logging
import sys
import threading
from collections import deque
from pathlib import Path
from typing import Callable

from .config import LOG_HISTORY_LIMIT

PACKAGE_LOGGER = "webpdrop"


def configure(log_level: int, log_path: Path | None = None) -> None:
    """Configure console (and optional file) logging for the application.

    Args:
        log_level: The desired verbosity level.
        log_path: Optional file to mirror log output into.
    """
    root = logging.getLogger()

    # Drop handlers left over from a previous configure() call.
    for handler in list(root.handlers):
        root.removeHandler(handler)

    root.setLevel(log_level)
    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    root.addHandler(stdout_handler)

    if log_path is not None:
        file_handler = logging.FileHandler(log_path, mode="w", encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)


class MessageLog(logging.Handler):
    """Keeps the most recent human-readable messages and notifies listeners.

    Listeners are called on the thread that emitted the record; GUI code has
    to marshal them onto its own thread.
    """

    def __init__(self, limit: int = LOG_HISTORY_LIMIT, level: int = logging.INFO):
        super().__init__(level)
        self.setFormatter(logging.Formatter('%(message)s'))
        self._messages: deque[str] = deque(maxlen=limit)
        self._listeners: list[Callable[[str], None]] = []
        self._messages_lock = threading.Lock()

    @property
    def limit(self) -> int:
        return self._messages.maxlen or LOG_HISTORY_LIMIT

    @property
    def messages(self) -> list[str]:
        with self._messages_lock:
            return list(self._messages)

    @property
    def last_message(self) -> str | None:
        with self._messages_lock:
            return self._messages[-1] if self._messages else None

    def add_listener(self, listener: Callable[[str], None]) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[str], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def clear(self) -> None:
        with self._messages_lock:
            self._messages.clear()

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
        except Exception:
            self.handleError(record)
            return
        with self._messages_lock:
            self._messages.append(message)
        for listener in list(self._listeners):
            listener(message)

    def attach(self, logger_name: str = PACKAGE_LOGGER) -> "MessageLog":
        """Attach to a logger (the package logger by default) and return self."""
        target = logging.getLogger(logger_name)
        if target.level == logging.NOTSET or target.level > self.level:
            target.setLevel(self.level)
        target.addHandler(self)
        return self

    def detach(self, logger_name: str = PACKAGE_LOGGER) -> None:
        logging.getLogger(logger_name).removeHandler(self)
