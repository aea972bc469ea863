"""Logging setup and a timed-operation context manager.

``configure_logging()`` installs the root handler format shared by the
command line entry point and any embedding application.

``timed()`` returns an async context manager that logs the start,
elapsed duration, and success/failure of a block of code::

    async with timed(logger, "Fetching keyword data"):
        data = await client.search_keyword(keyword)
"""

import logging
from datetime import datetime
from typing import Any, Optional

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s | %(message)s"
LOG_DATEFMT = "%H:%M:%S"


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger; unknown level names fall back to INFO."""
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO
    logging.basicConfig(level=numeric, format=LOG_FORMAT, datefmt=LOG_DATEFMT)


def timed(logger: logging.Logger, message: str) -> "TimedOperation":
    return TimedOperation(logger, message)


class TimedOperation:
    """Async context manager that measures and logs operation duration.

    On entry, logs a DEBUG message (``"Starting: <message>"``).
    On successful exit, logs an INFO message with ``duration_ms``.
    On exception, logs an ERROR message with ``duration_ms`` and the error,
    then re-raises the exception (does **not** suppress it).
    """

    def __init__(self, logger: logging.Logger, message: str) -> None:
        self.logger = logger
        self.message = message
        self.start_time: Optional[datetime] = None
        self.duration_ms: Optional[int] = None

    async def __aenter__(self) -> "TimedOperation":
        self.start_time = datetime.now()
        self.logger.debug("Starting: %s", self.message)
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Any,
    ) -> None:
        assert self.start_time is not None
        self.duration_ms = int(
            (datetime.now() - self.start_time).total_seconds() * 1000
        )

        if exc_type is not None:
            self.logger.error(
                "Failed: %s (duration_ms=%d): %s",
                self.message,
                self.duration_ms,
                exc_val,
            )
        else:
            self.logger.info(
                "Completed: %s (duration_ms=%d)",
                self.message,
                self.duration_ms,
            )
        # Return None (falsy) so exceptions propagate
