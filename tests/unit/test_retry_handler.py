"""Unit tests for retry_handler.

Sleep is injected, so no test waits on the wall clock.
"""

import threading

import pytest

from product_importer.exceptions import ScrapeCancelledError
from product_importer.utils.retry_handler import compute_backoff_delay, retry_with_backoff


class SleepRecorder:
    def __init__(self):
        self.delays = []

    def __call__(self, delay):
        self.delays.append(delay)


@pytest.mark.unit
def test_retry_succeeds_on_first_attempt():
    """Should return result immediately if function succeeds on first try."""
    sleep = SleepRecorder()
    attempts = []

    def successful_func(attempt):
        attempts.append(attempt)
        return "success"

    result = retry_with_backoff(successful_func, max_attempts=3, sleep=sleep)

    assert result == "success"
    assert attempts == [1]
    assert sleep.delays == []


@pytest.mark.unit
def test_retry_succeeds_after_failures():
    """Should retry and eventually succeed after initial failures."""
    sleep = SleepRecorder()

    def eventually_successful(attempt):
        if attempt < 3:
            raise ValueError("Not yet")
        return "success"

    result = retry_with_backoff(eventually_successful, max_attempts=3, base_delay=0.5, sleep=sleep)

    assert result == "success"
    assert sleep.delays == [0.5, 1.0]


@pytest.mark.unit
def test_retry_exhausts_and_raises_last_error():
    """Should raise last exception without sleeping after the final attempt."""
    sleep = SleepRecorder()
    attempts = []

    def always_fails(attempt):
        attempts.append(attempt)
        raise ValueError(f"Attempt {attempt}")

    with pytest.raises(ValueError, match="Attempt 3"):
        retry_with_backoff(always_fails, max_attempts=3, base_delay=1.0, sleep=sleep)

    assert attempts == [1, 2, 3]
    assert sleep.delays == [1.0, 2.0]


@pytest.mark.unit
def test_single_attempt_never_sleeps():
    sleep = SleepRecorder()

    def always_fails(attempt):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        retry_with_backoff(always_fails, max_attempts=1, sleep=sleep)

    assert sleep.delays == []


@pytest.mark.unit
def test_max_delay_caps_backoff():
    sleep = SleepRecorder()

    def always_fails(attempt):
        raise ValueError("Fail")

    with pytest.raises(ValueError):
        retry_with_backoff(always_fails, max_attempts=4, base_delay=10.0, max_delay=15.0, sleep=sleep)

    assert sleep.delays == [10.0, 15.0, 15.0]


@pytest.mark.unit
def test_should_retry_rejection_raises_immediately():
    """Errors rejected by the predicate skip the remaining attempts."""
    sleep = SleepRecorder()
    attempts = []

    def fails_with_type_error(attempt):
        attempts.append(attempt)
        raise TypeError("bad data")

    with pytest.raises(TypeError):
        retry_with_backoff(
            fails_with_type_error,
            max_attempts=3,
            should_retry=lambda error: not isinstance(error, TypeError),
            sleep=sleep,
        )

    assert attempts == [1]
    assert sleep.delays == []


@pytest.mark.unit
def test_invalid_max_attempts():
    with pytest.raises(ValueError, match="max_attempts must be at least 1"):
        retry_with_backoff(lambda attempt: None, max_attempts=0)


@pytest.mark.unit
def test_cancel_before_first_attempt():
    cancel_event = threading.Event()
    cancel_event.set()
    attempts = []

    with pytest.raises(ScrapeCancelledError):
        retry_with_backoff(attempts.append, max_attempts=3, cancel_event=cancel_event)

    assert attempts == []


@pytest.mark.unit
def test_cancel_during_wait_stops_retrying():
    """Setting the event while waiting should abort without another attempt."""
    cancel_event = threading.Event()
    attempts = []

    def fails_then_cancels(attempt):
        attempts.append(attempt)
        cancel_event.set()
        raise ValueError("Fail")

    with pytest.raises(ScrapeCancelledError):
        retry_with_backoff(
            fails_then_cancels, max_attempts=3, base_delay=5.0, cancel_event=cancel_event
        )

    assert attempts == [1]


@pytest.mark.unit
@pytest.mark.parametrize(
    "attempt,base_delay,max_delay,expected",
    [
        (1, 1.0, None, 1.0),
        (2, 1.0, None, 2.0),
        (3, 1.0, None, 4.0),
        (3, 0.5, None, 2.0),
        (10, 1.0, 30.0, 30.0),
        (1, 0.0, None, 0.0),
    ],
)
def test_compute_backoff_delay(attempt, base_delay, max_delay, expected):
    assert compute_backoff_delay(attempt, base_delay, max_delay=max_delay) == expected
