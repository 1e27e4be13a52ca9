"""Retry and timeout policy for transfer execution."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded retry with linear backoff.

    The delay before attempt ``n + 1`` is ``backoff_seconds * n``.
    ``transaction_timeout_seconds`` bounds each execution transaction.
    """

    max_attempts: int = 3
    backoff_seconds: float = 0.25
    transaction_timeout_seconds: float = 15.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.backoff_seconds < 0:
            raise ValueError("backoff_seconds must be >= 0")
        if self.transaction_timeout_seconds <= 0:
            raise ValueError("transaction_timeout_seconds must be > 0")

    def delay_after(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        return self.backoff_seconds * attempt
