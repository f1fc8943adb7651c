"""
app/connectors/base.py

Base connector abstraction and shared HTTP mechanics.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import requests

from app.config import ExternalHTTPSettings
from app.connectors.retry import RetryPolicies

logger = logging.getLogger(__name__)

_ERROR_BODY_PREVIEW = 500


class ConnectorRequestError(RuntimeError):
    """
    Raised when a connector cannot fetch data after retries.
    """


class ApiError(ConnectorRequestError):
    """
    Raised for an HTTP error response from the external API.
    """

    def __init__(self, source: str, status_code: int, body: str) -> None:
        self.source = source
        self.status_code = status_code
        self.body = body
        message = f"{source}: HTTP {status_code}"
        if body:
            message = f"{message}: {body[:_ERROR_BODY_PREVIEW]}"
        super().__init__(message)


@dataclass(frozen=True)
class PagedResult:
    """
    One page of records from a paginated list endpoint.
    """

    data: list[Any]
    total_count: int
    page: int
    page_size: int
    has_more: bool


@dataclass(frozen=True)
class ConnectionCheck:
    """
    Outcome of a credential check against the external API.
    """

    ok: bool
    error: str | None = None


@dataclass
class _FailedAttempt:
    error: ConnectorRequestError
    wait_seconds: float
    reason: str = ""


class BaseConnector(ABC):
    """
    Connector interface for authenticated access to an external CRM API.
    """

    source: str

    def __init__(
        self,
        *,
        source: str,
        http_settings: ExternalHTTPSettings,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.source = source
        self._session = session or requests.Session()
        self._timeout_seconds = http_settings.timeout_seconds
        self._policies = RetryPolicies.from_settings(http_settings)
        self._sleep = sleep

    @abstractmethod
    def test_connection(self) -> ConnectionCheck:
        """
        Validate the credential with a minimal request. Must not raise.
        """

    def _request_json(
        self,
        *,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """
        Execute an HTTP request and return parsed JSON with retry support.
        """

        response = self._request(method=method, url=url, params=params, headers=headers)
        try:
            return response.json()
        except ValueError as exc:
            raise ConnectorRequestError(f"{self.source}: response was not valid JSON.") from exc

    def _request(
        self,
        *,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> requests.Response:
        """
        Execute an HTTP request, retrying rate limits and transient failures
        until the shared attempt budget is spent.
        """

        budget = self._policies.budget
        failure: _FailedAttempt | None = None

        for attempt in range(1, budget.max_attempts + 1):
            try:
                response = self._session.request(
                    method=method,
                    url=url,
                    params=params,
                    headers=headers,
                    timeout=self._timeout_seconds,
                )
            except requests.RequestException as exc:
                if not self._policies.transient.is_retryable_exception(exc):
                    raise ConnectorRequestError(f"{self.source}: request failed: {exc}") from exc
                error = ConnectorRequestError(f"{self.source}: network error: {exc}")
                error.__cause__ = exc
                failure = _FailedAttempt(
                    error=error,
                    wait_seconds=self._policies.transient.backoff_seconds(attempt),
                    reason="network_error",
                )
            else:
                failure = self._classify_response(response, attempt=attempt)
                if failure is None:
                    return response

            if not budget.allows_another(attempt):
                break

            logger.warning(
                "Connector request retry source=%s reason=%s attempt=%s/%s wait_seconds=%.2f url=%s",
                self.source,
                failure.reason,
                attempt,
                budget.max_attempts,
                failure.wait_seconds,
                url,
            )
            self._sleep(failure.wait_seconds)

        if failure is None:
            raise ConnectorRequestError(f"{self.source}: no request attempts were made.")
        logger.error(
            "Connector request exhausted retries source=%s url=%s error=%s",
            self.source,
            url,
            failure.error,
        )
        raise failure.error

    def _classify_response(self, response: requests.Response, *, attempt: int) -> _FailedAttempt | None:
        """
        Return None for a 2xx response, a retryable failure, or raise for a
        non-retryable error response.
        """

        status_code = response.status_code
        if 200 <= status_code < 300:
            return None

        body = response.text or ""
        if self._policies.rate_limit.applies_to(status_code):
            return _FailedAttempt(
                error=ApiError(self.source, status_code, body),
                wait_seconds=self._policies.rate_limit.wait_seconds(response.headers.get("Retry-After")),
                reason="rate_limited",
            )
        if self._policies.transient.is_retryable_status(status_code):
            return _FailedAttempt(
                error=ApiError(self.source, status_code, body),
                wait_seconds=self._policies.transient.backoff_seconds(attempt),
                reason="server_error",
            )

        logger.error(
            "Connector request failed source=%s status=%s url=%s",
            self.source,
            status_code,
            response.url,
        )
        raise ApiError(self.source, status_code, body)
