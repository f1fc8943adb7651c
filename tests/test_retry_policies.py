from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime

import requests

from app.config import ExternalHTTPSettings
from app.connectors.retry import RateLimitPolicy, RetryBudget, RetryPolicies, TransientErrorPolicy


class TestRetryBudget(unittest.TestCase):
    def test_allows_retries_until_max_attempts(self) -> None:
        budget = RetryBudget(max_attempts=3)

        self.assertTrue(budget.allows_another(1))
        self.assertTrue(budget.allows_another(2))
        self.assertFalse(budget.allows_another(3))

    def test_single_attempt_budget_never_retries(self) -> None:
        self.assertFalse(RetryBudget(max_attempts=1).allows_another(1))


class TestRateLimitPolicy(unittest.TestCase):
    def setUp(self) -> None:
        self.policy = RateLimitPolicy(default_wait_seconds=5.0, max_wait_seconds=60.0)

    def test_applies_only_to_429(self) -> None:
        self.assertTrue(self.policy.applies_to(429))
        self.assertFalse(self.policy.applies_to(503))
        self.assertFalse(self.policy.applies_to(400))

    def test_uses_retry_after_seconds(self) -> None:
        self.assertEqual(self.policy.wait_seconds("2"), 2.0)

    def test_missing_header_uses_default(self) -> None:
        self.assertEqual(self.policy.wait_seconds(None), 5.0)
        self.assertEqual(self.policy.wait_seconds("   "), 5.0)

    def test_unparseable_header_uses_default(self) -> None:
        self.assertEqual(self.policy.wait_seconds("soon"), 5.0)

    def test_wait_is_capped(self) -> None:
        self.assertEqual(self.policy.wait_seconds("3600"), 60.0)

    def test_negative_wait_is_clamped_to_zero(self) -> None:
        self.assertEqual(self.policy.wait_seconds("-4"), 0.0)

    def test_http_date_is_converted_to_delta(self) -> None:
        now = datetime(2026, 1, 5, 12, 0, 0, tzinfo=timezone.utc)
        header = format_datetime(now + timedelta(seconds=30), usegmt=True)

        self.assertAlmostEqual(self.policy.wait_seconds(header, now=now), 30.0)


class TestTransientErrorPolicy(unittest.TestCase):
    def setUp(self) -> None:
        self.policy = TransientErrorPolicy(initial_seconds=1.0, multiplier=2.0, max_seconds=5.0)

    def test_backoff_grows_exponentially_and_is_capped(self) -> None:
        delays = [self.policy.backoff_seconds(attempt) for attempt in range(1, 6)]

        self.assertEqual(delays, [1.0, 2.0, 4.0, 5.0, 5.0])

    def test_server_errors_are_retryable(self) -> None:
        for status_code in (500, 502, 503, 504):
            self.assertTrue(self.policy.is_retryable_status(status_code))

    def test_client_errors_are_not_retryable(self) -> None:
        for status_code in (400, 401, 403, 404, 429):
            self.assertFalse(self.policy.is_retryable_status(status_code))

    def test_connection_errors_and_timeouts_are_retryable(self) -> None:
        self.assertTrue(self.policy.is_retryable_exception(requests.ConnectionError("reset")))
        self.assertTrue(self.policy.is_retryable_exception(requests.Timeout("slow")))

    def test_other_request_errors_are_not_retryable(self) -> None:
        self.assertFalse(self.policy.is_retryable_exception(requests.exceptions.InvalidURL("bad")))


class TestRetryPoliciesFromSettings(unittest.TestCase):
    def test_settings_are_distributed_to_each_policy(self) -> None:
        settings = ExternalHTTPSettings(
            max_attempts=4,
            backoff_initial_seconds=0.5,
            backoff_multiplier=3.0,
            backoff_max_seconds=10.0,
            rate_limit_default_wait_seconds=7.0,
            rate_limit_max_wait_seconds=90.0,
        )

        policies = RetryPolicies.from_settings(settings)

        self.assertEqual(policies.budget.max_attempts, 4)
        self.assertEqual(policies.rate_limit.default_wait_seconds, 7.0)
        self.assertEqual(policies.rate_limit.max_wait_seconds, 90.0)
        self.assertEqual(policies.transient.backoff_seconds(2), 1.5)
        self.assertEqual(policies.transient.max_seconds, 10.0)


if __name__ == "__main__":
    unittest.main()
