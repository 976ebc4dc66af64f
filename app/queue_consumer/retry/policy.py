"""Retry policy protocol and the attempt-limiting decorator.

Concrete delay strategies (exponential backoff, fixed interval, ...) are
supplied by the application. Any object implementing RetryPolicy can be
wrapped by LimitedRetryPolicy to put a hard ceiling on attempts.
"""

from datetime import datetime
from typing import Optional, Protocol

from queue_consumer.exceptions import InvalidConfiguration


class RetryPolicy(Protocol):
    """Decides when a failed item should be attempted again.

    Implementations must be pure functions of their inputs so they can be
    decorated and tested in isolation.

    Example:
        class FixedDelayRetryPolicy:
            def __init__(self, delay: timedelta):
                self.delay = delay

            def calculate_next_attempt_time(self, last_attempt_time, attempt_count):
                return last_attempt_time + self.delay
    """

    def calculate_next_attempt_time(
        self, last_attempt_time: datetime, attempt_count: int
    ) -> Optional[datetime]:
        """Calculate the next attempt time.

        Args:
            last_attempt_time: Time of the attempt that just failed
            attempt_count: Number of attempts made so far, including that one

        Returns:
            Time of the next attempt, or None to stop retrying
        """
        ...


class LimitedRetryPolicy:
    """Caps the number of attempts of a delegate policy.

    While attempt_count is below the limit the delegate decides; afterwards
    retrying stops without consulting it.

    Attributes:
        attempt_count_limit: Maximum number of attempts, at least 1
        delegate: Policy that calculates delays while attempts remain
    """

    def __init__(self, attempt_count_limit: int, delegate: RetryPolicy) -> None:
        if attempt_count_limit < 1:
            raise InvalidConfiguration(
                f"Attempt count limit cannot be less than 1, but is {attempt_count_limit}"
            )
        if delegate is None:
            raise InvalidConfiguration("Delegate retry policy is required")
        self.attempt_count_limit = attempt_count_limit
        self.delegate = delegate

    def calculate_next_attempt_time(
        self, last_attempt_time: datetime, attempt_count: int
    ) -> Optional[datetime]:
        if attempt_count < self.attempt_count_limit:
            return self.delegate.calculate_next_attempt_time(
                last_attempt_time, attempt_count
            )
        return None

    def __repr__(self) -> str:
        return (
            f"LimitedRetryPolicy(attempt_count_limit={self.attempt_count_limit}, "
            f"delegate={self.delegate!r})"
        )
