"""
app/connectors package marker.
"""

from app.connectors.acculynx_connector import AccuLynxConnector
from app.connectors.base import (
    ApiError,
    BaseConnector,
    ConnectionCheck,
    ConnectorRequestError,
    PagedResult,
)
from app.connectors.retry import RateLimitPolicy, RetryBudget, RetryPolicies, TransientErrorPolicy

__all__ = [
    "AccuLynxConnector",
    "ApiError",
    "BaseConnector",
    "ConnectionCheck",
    "ConnectorRequestError",
    "PagedResult",
    "RateLimitPolicy",
    "RetryBudget",
    "RetryPolicies",
    "TransientErrorPolicy",
]
