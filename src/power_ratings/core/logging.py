"""
Logging setup shared by the rating engine, the bracket tools and the CLI.

Everything logs under the ``power_ratings`` logger so one call to
:func:`setup_logging` configures the whole package. Long replays report
through :func:`log_timing` and :class:`ProgressLogger`.
"""

from __future__ import annotations

import logging
import os
import sys
import time
from contextlib import contextmanager
from pathlib import Path

PACKAGE_LOGGER = "power_ratings"

LOG_LEVEL_ENV = "POWER_RATINGS_LOG_LEVEL"
LOG_FORMAT_ENV = "POWER_RATINGS_LOG_FORMAT"

_FORMATS = {
    "simple": "%(levelname)s: %(message)s",
    "detailed": (
        "%(asctime)s - %(name)s - %(levelname)s - "
        "%(funcName)s:%(lineno)d - %(message)s"
    ),
    "json": (
        '{"timestamp": "%(asctime)s", "level": "%(levelname)s", '
        '"module": "%(name)s", "message": "%(message)s"}'
    ),
}


def _resolve_level(level: str | int | None) -> int:
    if level is None:
        level = os.getenv(LOG_LEVEL_ENV) or logging.INFO
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level!r}")
        return resolved
    return level


def setup_logging(
    level: str | int | None = None,
    log_file: str | Path | None = None,
    format_style: str | None = None,
    include_timestamp: bool = True,
) -> logging.Logger:
    """Configure the package logger.

    Replaces any handlers installed by an earlier call, so it is safe to call
    once per CLI invocation.

    Args:
        level: Level name or number. Defaults to ``$POWER_RATINGS_LOG_LEVEL``,
            then INFO.
        log_file: Also write records to this file.
        format_style: ``"simple"``, ``"detailed"`` or ``"json"``. Defaults to
            ``$POWER_RATINGS_LOG_FORMAT``, then ``"detailed"``.
        include_timestamp: Keep the timestamp in the detailed format.

    Returns:
        The configured ``power_ratings`` logger.
    """
    numeric_level = _resolve_level(level)
    style = format_style or os.getenv(LOG_FORMAT_ENV) or "detailed"
    if style not in _FORMATS:
        raise ValueError(
            f"Unknown log format {style!r}; expected one of {sorted(_FORMATS)}"
        )
    format_string = _FORMATS[style]
    if style == "detailed" and not include_timestamp:
        format_string = format_string.replace("%(asctime)s - ", "")
    formatter = logging.Formatter(format_string)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logger = logging.getLogger(PACKAGE_LOGGER)
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()
    logger.setLevel(numeric_level)
    for handler in handlers:
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger for a component, nested under the package logger.

    Names that are already inside the package (``__name__`` of a package
    module) are used unchanged.
    """
    if name == PACKAGE_LOGGER or name.startswith(PACKAGE_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")


@contextmanager
def log_timing(
    logger: logging.Logger, operation: str, level: int = logging.INFO
):
    """Log start, completion and elapsed time of a block.

    Failures are logged at ERROR with the elapsed time and re-raised.

    Examples:
        >>> with log_timing(get_logger(__name__), "replaying season"):
        ...     engine.recalculate(games)
    """
    started = time.perf_counter()
    logger.log(level, "Starting %s", operation)
    try:
        yield
    except Exception as exc:
        logger.error(
            "Failed %s after %.2fs: %s",
            operation,
            time.perf_counter() - started,
            exc,
        )
        raise
    logger.log(
        level, "Completed %s in %.2fs", operation, time.perf_counter() - started
    )


class ProgressLogger:
    """
    Periodic progress lines for a long loop.

    A line is logged at INFO whenever ``update_interval`` items have passed
    since the last line, and always on the final item.

    Examples
    --------
    >>> with ProgressLogger(logger, "replaying games", total=len(games)) as p:
    ...     for i, game in enumerate(games, start=1):
    ...         engine.apply_game(game)
    ...         p.update(i)
    """

    def __init__(
        self,
        logger: logging.Logger,
        operation: str,
        total: int | None = None,
        update_interval: int = 100,
    ) -> None:
        self.logger = logger
        self.operation = operation
        self.total = total
        self.update_interval = max(1, update_interval)
        self.started: float | None = None
        self.last_reported = 0

    def __enter__(self) -> ProgressLogger:
        self.started = time.perf_counter()
        self.logger.debug(
            "Starting %s%s",
            self.operation,
            f" (0/{self.total})" if self.total else "",
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        elapsed = time.perf_counter() - self.started
        if exc_type is None:
            self.logger.debug("Completed %s in %.2fs", self.operation, elapsed)
        else:
            self.logger.error(
                "Failed %s after %.2fs: %s", self.operation, elapsed, exc_val
            )

    def update(self, current: int, message: str | None = None) -> None:
        due = current - self.last_reported >= self.update_interval
        if not due and current != self.total:
            return
        elapsed = time.perf_counter() - self.started
        rate = current / elapsed if elapsed > 0 else 0.0
        if self.total:
            line = (
                f"{self.operation}: {current}/{self.total} "
                f"({current / self.total:.1%}) - {rate:.1f}/s"
            )
        else:
            line = f"{self.operation}: {current} items - {rate:.1f}/s"
        if message:
            line = f"{line} - {message}"
        self.logger.info(line)
        self.last_reported = current
