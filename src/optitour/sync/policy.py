"""Retry policy for replaying queued actions."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how patiently a queued action is retried.

    The delay before a retry doubles with every failure and is capped at
    `max_delay`: 2s, 4s, 8s, then 16s with the defaults. Items that
    reached `max_retries` failed attempts are handed to the dead-letter queue.
    """

    max_retries: int = 5
    base_delay: float = 1.0
    max_delay: float = 16.0

    def backoff(self, retries: int) -> float:
        """Return the delay in seconds before attempt number `retries + 1`."""
        if retries <= 0:
            return 0.0
        return min(self.base_delay * (2**retries), self.max_delay)

    def exhausted(self, retries: int) -> bool:
        """Return True when an item with `retries` failures must be abandoned."""
        return retries >= self.max_retries
