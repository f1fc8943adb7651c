"""
app/connectors/retry.py

Retry policies for outbound connector requests.

Rate limiting and transient failures are handled by separate policies that
share a single attempt budget inside the connector request loop.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

import requests

from app.config import ExternalHTTPSettings

RATE_LIMIT_STATUS_CODE = 429
TRANSIENT_STATUS_CODES = frozenset({500, 502, 503, 504})


@dataclass(frozen=True)
class RetryBudget:
    """
    Fixed number of request attempts shared by every retry policy.
    """

    max_attempts: int = 3

    def allows_another(self, attempt: int) -> bool:
        """
        Return True when attempt number ``attempt`` (1-based) may be followed by another.
        """

        return attempt < self.max_attempts


@dataclass(frozen=True)
class RateLimitPolicy:
    """
    Honors the server's ``Retry-After`` hint on HTTP 429 responses.
    """

    default_wait_seconds: float = 5.0
    max_wait_seconds: float = 120.0

    def applies_to(self, status_code: int) -> bool:
        return status_code == RATE_LIMIT_STATUS_CODE

    def wait_seconds(self, retry_after: str | None, *, now: datetime | None = None) -> float:
        """
        Seconds to wait before retrying.

        ``retry_after`` may be delta-seconds or an HTTP date. Missing or
        unparseable values fall back to ``default_wait_seconds``.
        """

        wait = self._parse_retry_after(retry_after, now=now)
        if wait is None:
            wait = self.default_wait_seconds
        return min(max(0.0, wait), self.max_wait_seconds)

    @staticmethod
    def _parse_retry_after(value: str | None, *, now: datetime | None) -> float | None:
        if value is None:
            return None
        stripped = value.strip()
        if not stripped:
            return None
        try:
            return float(stripped)
        except ValueError:
            pass
        try:
            retry_at = parsedate_to_datetime(stripped)
        except (TypeError, ValueError):
            return None
        if retry_at.tzinfo is None:
            retry_at = retry_at.replace(tzinfo=timezone.utc)
        reference = now or datetime.now(timezone.utc)
        return (retry_at - reference).total_seconds()


@dataclass(frozen=True)
class TransientErrorPolicy:
    """
    Capped exponential backoff for network errors and retryable 5xx responses.
    """

    initial_seconds: float = 1.0
    multiplier: float = 2.0
    max_seconds: float = 30.0
    retryable_status_codes: frozenset[int] = field(default=TRANSIENT_STATUS_CODES)

    def is_retryable_status(self, status_code: int) -> bool:
        return status_code in self.retryable_status_codes

    def is_retryable_exception(self, exc: BaseException) -> bool:
        return isinstance(exc, (requests.ConnectionError, requests.Timeout))

    def backoff_seconds(self, attempt: int) -> float:
        """
        Delay after failed attempt number ``attempt`` (1-based).
        """

        delay = self.initial_seconds * (self.multiplier ** max(0, attempt - 1))
        return min(delay, self.max_seconds)


@dataclass(frozen=True)
class RetryPolicies:
    budget: RetryBudget
    rate_limit: RateLimitPolicy
    transient: TransientErrorPolicy

    @classmethod
    def from_settings(cls, settings: ExternalHTTPSettings) -> RetryPolicies:
        return cls(
            budget=RetryBudget(max_attempts=settings.max_attempts),
            rate_limit=RateLimitPolicy(
                default_wait_seconds=settings.rate_limit_default_wait_seconds,
                max_wait_seconds=settings.rate_limit_max_wait_seconds,
            ),
            transient=TransientErrorPolicy(
                initial_seconds=settings.backoff_initial_seconds,
                multiplier=settings.backoff_multiplier,
                max_seconds=settings.backoff_max_seconds,
            ),
        )
