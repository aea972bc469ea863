"""
Shared utility functions used throughout the VidStream codebase.

Provides:
    - utc_now(): Timezone-aware UTC datetime
    - ensure_utc(dt): Convert any datetime to timezone-aware UTC
    - parse_timestamp(value): Parse API timestamps into aware datetimes
    - days_between(earlier, later): Whole days elapsed, never negative
    - round_half_up(x): Half-up rounding used by every score
    - clamp(), slugify(), title_case(), format_number()
    - @with_retry: Decorator with exponential backoff for transient failures
"""

from datetime import datetime, timezone
import asyncio
import logging
import math
import re
from functools import wraps
from typing import Callable, TypeVar, Any, Tuple, Type, Optional, Union

from vidstream.exceptions import RetryExhaustedError

# ---------------------------------------------------------------------------
# Type variable for generic return types in the retry decorator
# ---------------------------------------------------------------------------
T = TypeVar("T")


# ===========================================================================
# TIMEZONE UTILITIES
# ===========================================================================


def utc_now() -> datetime:
    """
    Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime in UTC.
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """
    Ensure a datetime is timezone-aware in UTC.

    Args:
        dt: Datetime to convert (naive or aware).

    Returns:
        Timezone-aware datetime in UTC.
    """
    if dt.tzinfo is None:
        # Assume naive datetime is UTC
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """
    Parse an RFC 3339 timestamp (as returned by the YouTube API).

    Returns ``None`` for empty or unparseable input instead of raising, so
    sparse upstream records never break scoring.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    text = value.strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return ensure_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


def days_between(earlier: datetime, later: datetime) -> int:
    """Whole days from *earlier* to *later*, floored at zero."""
    seconds = (ensure_utc(later) - ensure_utc(earlier)).total_seconds()
    return max(0, math.floor(seconds / 86400))


# ===========================================================================
# NUMERIC HELPERS
# ===========================================================================


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer with halves going up.

    Python's ``round()`` rounds halves to even; every score in this package
    must be reproducible across implementations, so ``x.5`` always goes
    toward positive infinity.
    """
    return int(math.floor(value + 0.5))


def round_to(value: float, digits: int) -> float:
    """Half-up rounding to a fixed number of decimal places."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def clamp(value: float, lower: float, upper: float) -> float:
    return min(max(value, lower), upper)


def format_number(num: float) -> str:
    """Compact display form: ``1.2M``, ``45.0K``, ``999``."""
    if num >= 1_000_000:
        return f"{num / 1_000_000:.1f}M"
    if num >= 1000:
        return f"{num / 1000:.1f}K"
    return str(int(num)) if float(num).is_integer() else str(num)


# ===========================================================================
# TEXT HELPERS
# ===========================================================================


def slugify(value: str, max_length: int = 32) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")
    return slug[:max_length]


def title_case(text: str) -> str:
    """Upper-case the first letter of every space-separated word."""
    return " ".join(
        word[0].upper() + word[1:].lower() if word else word
        for word in text.split(" ")
    )


# ===========================================================================
# RETRY DECORATOR WITH EXPONENTIAL BACKOFF
# Retries are for transient failures (network errors). Eventually raises
# if all attempts fail.
# ===========================================================================


def with_retry(
    max_attempts: int = 3,
    base_delay: float = 2.0,
    retryable_exceptions: Tuple[Type[Exception], ...] = (Exception,),
    operation_name: Optional[str] = None,
) -> Callable:
    """
    Decorator for retry logic with exponential backoff on coroutine functions.

    Args:
        max_attempts: Maximum number of attempts (default ``3``).
        base_delay: Initial delay in seconds before the first retry
            (default ``2.0``). Subsequent delays grow exponentially:
            ``base_delay * (2 ** attempt)``.
        retryable_exceptions: Tuple of exception types that should trigger
            a retry. Any exception **not** in this tuple will propagate
            immediately without retrying.
        operation_name: Human-readable name used in log messages. If
            ``None``, the wrapped function's ``__name__`` is used.

    Raises:
        RetryExhaustedError: When all retry attempts have been exhausted.

    Usage::

        @with_retry(max_attempts=3, retryable_exceptions=(httpx.TransportError,))
        async def get_json(url: str) -> dict:
            ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        if not asyncio.iscoroutinefunction(func):
            raise TypeError(f"with_retry requires a coroutine function, got {func!r}")
        op_name = operation_name or func.__name__

        @wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> T:
            last_error: Optional[Exception] = None
            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except retryable_exceptions as e:
                    last_error = e
                    if attempt < max_attempts:
                        delay = base_delay * (2 ** (attempt - 1))
                        logging.warning(
                            "[RETRY] %s attempt %d/%d failed: %s. "
                            "Retrying in %.1fs...",
                            op_name,
                            attempt,
                            max_attempts,
                            e,
                            delay,
                        )
                        await asyncio.sleep(delay)
                    else:
                        logging.error(
                            "[RETRY EXHAUSTED] %s failed after %d attempts: %s",
                            op_name,
                            max_attempts,
                            e,
                        )
            raise RetryExhaustedError(
                op_name, max_attempts, last_error  # type: ignore[arg-type]
            )

        return async_wrapper  # type: ignore[return-value]

    return decorator
