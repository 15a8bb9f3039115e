"""
Per-run log capture.

Lines logged under the `changerun` logger hierarchy (runner notices, store
notices, `Action.logger`) while a changelog runs are buffered so the store
can persist them next to each execution record.

The handler lives on the `changerun` logger only for the duration of the
`with` block. When the capture level is below what the application lets
through, the `changerun` logger is lowered for the block and the extra
records are filtered out of every other handler, so console output keeps
the level the application configured.
"""

from __future__ import annotations

import logging
import threading
from typing import List, Optional, Tuple, Union

DEFAULT_FORMAT = "%(levelname)s %(name)s - %(message)s"
CAPTURED_LOGGER = "changerun"


class _BelowLevelFilter(logging.Filter):
    """Drops records of a logger hierarchy under a minimum level."""

    def __init__(self, name: str, min_level: int) -> None:
        super().__init__()
        self.prefix = name
        self.min_level = min_level

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno >= self.min_level:
            return True
        return not (record.name == self.prefix or record.name.startswith(f"{self.prefix}."))


class LogCapture(logging.Handler):
    """Logging handler buffering formatted lines in memory."""

    def __init__(self, level: Union[int, str] = logging.INFO, logger_name: str = CAPTURED_LOGGER) -> None:
        super().__init__(level=level)
        self.setFormatter(logging.Formatter(DEFAULT_FORMAT))
        self.logger_name = logger_name
        self._lines: List[str] = []
        self._buffer_lock = threading.Lock()
        self._saved_level: Optional[int] = None
        self._filtered: List[Tuple[logging.Handler, logging.Filter]] = []

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = self.format(record)
        except Exception:
            self.handleError(record)
            return
        with self._buffer_lock:
            self._lines.append(line)

    def drain(self) -> List[str]:
        """Return the buffered lines and start a fresh buffer."""
        with self._buffer_lock:
            lines, self._lines = self._lines, []
        return lines

    def __enter__(self) -> "LogCapture":
        target = logging.getLogger(self.logger_name)
        effective = target.getEffectiveLevel()

        if effective > self.level:
            self._saved_level = target.level
            target.setLevel(self.level)
            # Other handlers keep seeing only what they saw before
            below = _BelowLevelFilter(self.logger_name, effective)
            for handler in self._downstream_handlers(target):
                handler.addFilter(below)
                self._filtered.append((handler, below))

        target.addHandler(self)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        target = logging.getLogger(self.logger_name)
        target.removeHandler(self)
        for handler, below in self._filtered:
            handler.removeFilter(below)
        self._filtered = []
        if self._saved_level is not None:
            target.setLevel(self._saved_level)
            self._saved_level = None
        self.drain()
        return False

    @staticmethod
    def _downstream_handlers(target: logging.Logger) -> List[logging.Handler]:
        handlers: List[logging.Handler] = []
        current: Optional[logging.Logger] = target
        while current is not None:
            handlers.extend(h for h in current.handlers if h not in handlers)
            if not current.propagate:
                break
            current = current.parent
        return handlers
