"""
Structured logging helpers for migration workflows.
"""

from __future__ import annotations

import json
import logging
from typing import Any

_REDACTED_FIELDS = frozenset({"credential", "api_key", "authorization"})


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """
    Emit one structured log line as compact JSON. Credential fields are masked.
    """

    payload = {"event": event}
    for key, value in fields.items():
        payload[key] = "***" if key.lower() in _REDACTED_FIELDS else value
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))
