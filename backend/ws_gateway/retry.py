"""
Jittered exponential backoff for the Redis subscriber.

Every gateway process reconnects to Redis after an outage; the jitter
spreads those reconnects out instead of having them land together.
"""

from __future__ import annotations

import random
from dataclasses import dataclass

from shared.config.settings import settings


@dataclass(frozen=True, slots=True)
class RetryConfig:
    """delay(n) = min(initial_delay * backoff_base ** n, max_delay) scaled by 1 ± jitter_factor."""

    initial_delay: float = 1.0
    max_delay: float = 30.0
    backoff_base: float = 2.0
    jitter_factor: float = 0.25
    max_attempts: int = 10

    def __post_init__(self) -> None:
        problems = []
        if self.initial_delay <= 0:
            problems.append("initial_delay must be positive")
        if self.max_delay < self.initial_delay:
            problems.append("max_delay must be >= initial_delay")
        if self.backoff_base < 1:
            problems.append("backoff_base must be >= 1")
        if not 0 <= self.jitter_factor <= 1:
            problems.append("jitter_factor must be within [0, 1]")
        if self.max_attempts < 1:
            problems.append("max_attempts must be >= 1")
        if problems:
            raise ValueError("; ".join(problems))

    @classmethod
    def for_redis(cls) -> RetryConfig:
        return cls(max_attempts=settings.redis_max_reconnect_attempts)

    def base_delay(self, attempt: int) -> float:
        return min(self.initial_delay * self.backoff_base ** attempt, self.max_delay)


def calculate_delay_with_jitter(attempt: int, config: RetryConfig | None = None) -> float:
    """Seconds to wait before reconnect attempt `attempt` (0-indexed)."""
    config = config or RetryConfig()
    base = config.base_delay(attempt)
    spread = base * config.jitter_factor
    return max(0.0, base + random.uniform(-spread, spread))
