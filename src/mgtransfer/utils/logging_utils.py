"""Logging utilities for the transfer engine."""

import itertools
import logging
import sys
import time
from functools import wraps
from pathlib import Path
from typing import IO, List, Optional, Union

PACKAGE_LOGGER = "mgtransfer"


class ColoredFormatter(logging.Formatter):
    """Console formatter that colors the level name."""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def format(self, record):
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            # the record is shared with the other handlers
            record.levelname = levelname


def setup_logging(
    level: Union[str, int] = logging.INFO,
    format_string: Optional[str] = None,
    log_file: Optional[Union[str, Path]] = None,
    console_output: bool = True,
    colored_console: bool = True
) -> logging.Logger:
    """
    Configure the ``mgtransfer`` logger.

    Diagnostics go to stderr so that they do not interleave with reports
    written to stdout. Handlers from an earlier call are replaced.

    Args:
        level: Logging level
        format_string: Custom format string
        log_file: Path to log file (optional)
        console_output: Enable console output
        colored_console: Color the level names on the console

    Returns:
        The configured package logger
    """
    if format_string is None:
        format_string = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        formatter_class = ColoredFormatter if colored_console else logging.Formatter
        console_handler.setFormatter(formatter_class(format_string))
        package_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(format_string))
        package_logger.addHandler(file_handler)

    package_logger.debug(f"Logging initialized: level={logging.getLevelName(package_logger.level)}, "
                         f"console={console_output}, file={log_file is not None}")
    return package_logger


def log_function_call(func):
    """Log entry, exit and elapsed time of a call at debug level; errors are logged and re-raised."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        logger = logging.getLogger(func.__module__)
        start_time = time.perf_counter()

        logger.debug(f"Entering {func.__qualname__}")

        try:
            result = func(*args, **kwargs)
        except Exception as e:
            elapsed_time = time.perf_counter() - start_time
            logger.error(f"Exception in {func.__qualname__} after {elapsed_time:.3f}s: {e}")
            raise

        elapsed_time = time.perf_counter() - start_time
        logger.debug(f"Exiting {func.__qualname__} (elapsed: {elapsed_time:.3f}s)")
        return result

    return wrapper


_reporter_ids = itertools.count()


class Reporter:
    """
    Explicit report channel for validation results.

    Wraps a private, non-propagating logger so that reports do not mix with
    the package's diagnostic logging. Sinks (streams such as ``io.StringIO``
    or files) can be attached and detached; verbosity is a logging level.
    """

    def __init__(
        self,
        name: str = "mgtransfer.report",
        level: Union[str, int] = logging.INFO,
        stream: Optional[IO[str]] = None,
        log_file: Optional[Union[str, Path]] = None,
        format_string: str = "%(message)s"
    ):
        """
        Initialize the reporter.

        Args:
            name: Base name of the underlying logger
            level: Verbosity; messages below this level are dropped
            stream: Text stream to attach as a sink
            log_file: File to attach as a sink
            format_string: Format used by all sinks
        """
        self.logger = logging.getLogger(f"{name}.{next(_reporter_ids)}")
        self.logger.propagate = False
        self.logger.setLevel(level)
        # Without sinks, reports are dropped rather than sent to logging.lastResort
        self.logger.addHandler(logging.NullHandler())
        self.format_string = format_string
        self._handlers: List[logging.Handler] = []

        if stream is not None:
            self.attach_stream(stream)
        if log_file is not None:
            self.attach_file(log_file)

    @property
    def level(self) -> int:
        return self.logger.level

    def set_level(self, level: Union[str, int]) -> None:
        self.logger.setLevel(level)

    def _attach(self, handler: logging.Handler) -> logging.Handler:
        handler.setFormatter(logging.Formatter(self.format_string))
        self.logger.addHandler(handler)
        self._handlers.append(handler)
        return handler

    def attach_stream(self, stream: IO[str]) -> logging.Handler:
        return self._attach(logging.StreamHandler(stream))

    def attach_file(self, log_file: Union[str, Path]) -> logging.Handler:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        return self._attach(logging.FileHandler(log_path))

    def detach(self, handler: logging.Handler) -> None:
        self.logger.removeHandler(handler)
        self._handlers.remove(handler)
        handler.close()

    def close(self) -> None:
        for handler in list(self._handlers):
            self.detach(handler)

    def debug(self, message: str) -> None:
        self.logger.debug(message)

    def info(self, message: str) -> None:
        self.logger.info(message)

    def warning(self, message: str) -> None:
        self.logger.warning(message)

    def error(self, message: str) -> None:
        self.logger.error(message)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
