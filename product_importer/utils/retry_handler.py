"""Retry logic with exponential backoff.

Pure, testable functions: the sleep function and the cancellation event
are injected so callers and tests control time.
"""

import threading
import time
from typing import Callable, TypeVar

from loguru import logger

from product_importer.exceptions import ScrapeCancelledError

T = TypeVar("T")


def compute_backoff_delay(
    attempt: int,
    base_delay: float,
    exponential_base: float = 2.0,
    max_delay: float | None = None,
) -> float:
    """Delay to wait after failed attempt N (1-based) before attempt N+1.

    Examples:
        >>> compute_backoff_delay(1, 1.0)
        1.0
        >>> compute_backoff_delay(3, 0.5)
        2.0
        >>> compute_backoff_delay(10, 1.0, max_delay=30.0)
        30.0
    """
    delay = base_delay * (exponential_base ** (attempt - 1))
    if max_delay is not None:
        delay = min(delay, max_delay)
    return delay


def _wait(
    delay: float,
    sleep: Callable[[float], None],
    cancel_event: threading.Event | None,
) -> None:
    if cancel_event is None:
        sleep(delay)
        return
    if cancel_event.wait(delay):
        raise ScrapeCancelledError("Scrape cancelled while waiting to retry")


def retry_with_backoff(
    func: Callable[[int], T],
    max_attempts: int = 3,
    base_delay: float = 1.0,
    exponential_base: float = 2.0,
    max_delay: float | None = 60.0,
    should_retry: Callable[[Exception], bool] | None = None,
    sleep: Callable[[float], None] = time.sleep,
    cancel_event: threading.Event | None = None,
) -> T:
    """Execute function with exponential backoff retry logic.

    No delay precedes the first attempt; the delay after failed attempt N
    is base_delay * exponential_base ** (N - 1).

    Args:
        func: Function to execute; receives the 1-based attempt number
        max_attempts: Total number of attempts (including the first)
        base_delay: Initial delay between attempts in seconds
        exponential_base: Base for exponential backoff calculation
        max_delay: Maximum delay between attempts in seconds (None = no cap)
        should_retry: Predicate deciding whether an error is worth retrying;
            errors it rejects are raised immediately
        sleep: Sleep function used when no cancel_event is given
        cancel_event: Optional event; when set, waiting stops and
            ScrapeCancelledError is raised

    Returns:
        Result of successful function execution

    Raises:
        ScrapeCancelledError: If cancel_event is set before or between attempts
        Exception: Last exception if all attempts fail
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

    for attempt in range(1, max_attempts + 1):
        if cancel_event is not None and cancel_event.is_set():
            raise ScrapeCancelledError("Scrape cancelled before attempt")

        try:
            return func(attempt)
        except Exception as e:
            if attempt == max_attempts:
                logger.warning(f"All {max_attempts} attempts failed: {e}")
                raise

            if should_retry is not None and not should_retry(e):
                logger.warning(f"Attempt {attempt}/{max_attempts} failed, not retrying: {e}")
                raise

            delay = compute_backoff_delay(attempt, base_delay, exponential_base, max_delay)
            logger.info(
                f"Attempt {attempt}/{max_attempts} failed: {e}. "
                f"Retrying in {delay:.2f}s..."
            )
            _wait(delay, sleep, cancel_event)

    raise AssertionError("unreachable")  # Loop always returns or raises
