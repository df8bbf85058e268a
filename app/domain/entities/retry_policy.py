"""Domain value describing how a caregiver wants unanswered prompts handled."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True)
class RetryPolicy:
    """Retry ladder configuration of a caregiver."""

    max_retries: int
    retry_interval_minutes: int
    escalation_enabled: bool = True

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be zero or positive")
        if self.retry_interval_minutes <= 0:
            raise ValueError("retry_interval_minutes must be positive")

    @property
    def retry_interval(self) -> timedelta:
        return timedelta(minutes=self.retry_interval_minutes)


__all__ = ["RetryPolicy"]
