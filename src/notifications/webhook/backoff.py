"""Retry delay policy for webhook deliveries."""

from enum import Enum


class RetryBackoff(Enum):
    LINEAR = "LINEAR"
    EXPONENTIAL = "EXPONENTIAL"


def retry_delay(attempts: int, backoff: str, multiplier: float, max_delay: float, base_delay: float = 1.0) -> float:
    """Seconds to wait before the next try, after ``attempts`` tries have failed."""
    attempts = max(attempts, 1)
    if backoff == RetryBackoff.LINEAR.value:
        delay = base_delay * attempts
    else:
        delay = base_delay * multiplier ** (attempts - 1)
    return min(max_delay, delay)
