"""Shared state for one run: the aggregate failure flag, the console and stdout."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from .errors import describe

CONSOLE_LOGGER = "bzbatch.console"

# configure_logging() replaces this with the real stderr handler
logging.getLogger(CONSOLE_LOGGER).addHandler(logging.NullHandler())


class RunContext:
    """Passed to every job and to the dispatcher.

    ``report_failure`` and ``write_line`` are the only mutating operations.
    Console lines go through a single logger, so each line is emitted whole
    under its handler's lock and lines from concurrent jobs never interleave.
    That logger prints nothing until ``logging_config.configure_logging()``
    has installed its handler.

    Jobs writing to standard output hold :meth:`exclusive_stdout` for their
    whole transfer, so each compressed stream reaches stdout in one piece.
    """

    def __init__(self, console: Optional[logging.Logger] = None) -> None:
        self._console = console or logging.getLogger(CONSOLE_LOGGER)
        self._status_lock = threading.Lock()
        self._stdout_lock = threading.Lock()
        self._failed = False

    def report_failure(self) -> None:
        with self._status_lock:
            self._failed = True

    @property
    def failed(self) -> bool:
        with self._status_lock:
            return self._failed

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0

    @contextmanager
    def exclusive_stdout(self) -> Iterator[None]:
        with self._stdout_lock:
            yield

    def write_line(self, text: str, level: int = logging.INFO) -> None:
        self._console.log(level, text)

    def warn(self, path: str, message: str) -> None:
        self.write_line(f"{path}: {message}", logging.WARNING)

    def fail(self, path: str, error: object) -> None:
        self.write_line(f"{path}: {describe(error)}", logging.ERROR)
        self.report_failure()
