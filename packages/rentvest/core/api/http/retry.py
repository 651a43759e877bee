from __future__ import annotations

import random
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime

from pydantic import BaseModel, Field, field_validator

from rentvest.core.api.http.errors import ApiError, AuthMissingError, UnexpectedError


class RetryPolicy(BaseModel):
    """Retry policy for read queries.

    The request executor never retries on its own. A RetryPolicy is attached
    to a query explicitly and controls exponential backoff with jitter for
    failed reads. Mutations are never retried.

    Args:
        max_attempts: Maximum number of attempts (including initial request)
        base_delay_s: Base delay in seconds for exponential backoff
        max_delay_s: Maximum delay in seconds (caps exponential growth)
        jitter: Jitter as fraction of delay (0.15 = +/-15% randomization)
        retry_on_status: HTTP status codes that trigger retries
        retry_on_network: Retry failures that never reached a server
            (network errors and timeouts)
    """

    model_config = {"frozen": True}

    max_attempts: int = Field(default=3, ge=1)
    base_delay_s: float = Field(default=0.25, ge=0.0)
    max_delay_s: float = Field(default=5.0, ge=0.0)
    jitter: float = Field(default=0.15, ge=0.0, le=1.0)
    retry_on_status: tuple[int, ...] = (408, 429, 500, 502, 503, 504)
    retry_on_network: bool = True

    @field_validator("max_delay_s")
    @classmethod
    def validate_max_delay(cls, v: float, info) -> float:
        """Ensure max_delay_s >= base_delay_s."""
        base = info.data.get("base_delay_s", 0.25)
        if v < base:
            raise ValueError("max_delay_s must be >= base_delay_s")
        return v

    @classmethod
    def none(cls) -> RetryPolicy:
        """Single attempt, no retries."""
        return cls(max_attempts=1, base_delay_s=0.0, max_delay_s=0.0, jitter=0.0)

    def is_retryable(self, error: ApiError) -> bool:
        """Decide whether a failure is worth another attempt.

        Missing credentials and programming errors are never retried: a second
        attempt would fail the same way.
        """
        if isinstance(error, (AuthMissingError, UnexpectedError)):
            return False
        if error.status is None:
            return self.retry_on_network
        return error.status in self.retry_on_status

    def should_retry(self, error: ApiError, attempt: int) -> bool:
        """Check whether to retry after ``attempt`` attempts have failed.

        Args:
            error: Normalized failure of the latest attempt
            attempt: Number of attempts made so far (1-indexed)
        """
        return attempt < self.max_attempts and self.is_retryable(error)

    def compute_delay(self, attempt: int) -> float:
        """Backoff before the next attempt after ``attempt`` failures.

        Doubles from ``base_delay_s``, caps at ``max_delay_s`` and spreads the
        result by +/- ``jitter`` so concurrent readers do not retry in lockstep.
        """
        delay = min(self.max_delay_s, self.base_delay_s * 2 ** (attempt - 1))
        if not self.jitter:
            return delay
        return max(0.0, delay * (1 + random.uniform(-self.jitter, self.jitter)))


def parse_retry_after_seconds(value: str | None, now: datetime | None = None) -> float | None:
    """Seconds to wait according to a Retry-After header.

    Accepts delta-seconds or an HTTP date. Dates in the past yield 0.

    Returns:
        Seconds to wait, or None when the header is missing or unusable
    """
    if value is None or not value.strip():
        return None
    text = value.strip()
    try:
        seconds = float(text)
    except ValueError:
        pass
    else:
        return seconds if seconds >= 0 else None

    try:
        when = parsedate_to_datetime(text)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=UTC)
    return max(0.0, (when - (now or datetime.now(UTC))).total_seconds())
