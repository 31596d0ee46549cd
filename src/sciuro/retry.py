"""
Retry backoff for failed node reconciles.

RetryConfig computes per-node requeue delays with exponential backoff and
jitter, so many nodes failing at once (e.g. an API server hiccup) do not
retry in lockstep.
"""

import random
from dataclasses import dataclass


@dataclass
class RetryConfig:
    """
    Configuration for reconcile retry behavior.

    Attributes:
        min_wait_seconds: Delay before the first retry (default 1.0)
        max_wait_seconds: Upper bound on the base delay (default 300.0)
        exponential_base: Base for exponential calculation (default 2.0)
        jitter_fraction: Fraction of the delay added as jitter (default 0.1)

    Example:
        config = RetryConfig(min_wait_seconds=0.5)
        delay = config.calculate_delay(attempt=3)
        # ~4-4.4 seconds (0.5 * 2^3 plus jitter)
    """

    min_wait_seconds: float = 1.0
    max_wait_seconds: float = 300.0
    exponential_base: float = 2.0
    jitter_fraction: float = 0.1

    def calculate_delay(self, attempt: int) -> float:
        """
        Delay in seconds before retry number `attempt` (0 for the first retry).

        Formula: min(max_wait, min_wait * base^attempt) + random(0, wait * jitter)
        """
        wait = min(
            self.max_wait_seconds,
            self.min_wait_seconds * (self.exponential_base**attempt),
        )
        return wait + random.uniform(0, wait * self.jitter_fraction)
