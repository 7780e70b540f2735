"""
Freshness policy for cached resources.
"""

from typing import Callable, Optional


def is_fresh(stored_at: Optional[int], ttl_millis: int, now: int) -> bool:
    """Return True when a payload stored at ``stored_at`` is younger than the TTL."""
    if stored_at is None:
        return False
    return (now - stored_at) < ttl_millis


class FreshnessPolicy:
    """TTL check bound to a clock returning epoch milliseconds."""

    def __init__(self, ttl_millis: int, clock: Callable[[], int]):
        self.ttl_millis = ttl_millis
        self.clock = clock

    @classmethod
    def from_seconds(cls, ttl_seconds: float, clock: Callable[[], int]) -> "FreshnessPolicy":
        return cls(int(ttl_seconds * 1000), clock)

    def is_valid(self, stored_at: Optional[int]) -> bool:
        return is_fresh(stored_at, self.ttl_millis, self.clock())

    def age_millis(self, stored_at: Optional[int]) -> Optional[int]:
        if stored_at is None:
            return None
        return max(0, self.clock() - stored_at)
