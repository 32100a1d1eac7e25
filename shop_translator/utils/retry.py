"""
Retry Policy
============
Exponential backoff shared by the strategy cascade and the job queues.
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class RetryPolicy:
    """min(base_delay * 2**attempt, max_delay), attempt counted from zero."""
    base_delay: float = 1.0
    max_delay: float = 10.0

    def delay(self, attempt: int) -> float:
        if attempt < 0:
            attempt = 0
        return min(self.base_delay * (2 ** attempt), self.max_delay)
