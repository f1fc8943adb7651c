"""
app/connectors/acculynx_connector.py

AccuLynx REST API connector used by the CRM migration.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from typing import Any

import requests

from app.config import AccuLynxSettings, ExternalHTTPSettings
from app.connectors.base import BaseConnector, ConnectionCheck, ConnectorRequestError, PagedResult

logger = logging.getLogger(__name__)


class AccuLynxConnector(BaseConnector):
    """
    Bearer-authenticated, paginated reader for AccuLynx list endpoints.

    List endpoints return ``{data, totalCount, page, pageSize, hasMore}``.
    """

    CONTACTS = "contacts"
    JOBS = "jobs"

    def __init__(
        self,
        *,
        api_key: str,
        settings: AccuLynxSettings,
        http_settings: ExternalHTTPSettings,
        base_url: str | None = None,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__(
            source=settings.source_name,
            http_settings=http_settings,
            session=session,
            sleep=sleep,
        )
        self._api_key = api_key
        self._base_url = (base_url or settings.base_url).rstrip("/")
        self._page_size = settings.page_size

    def fetch_page(self, resource: str, page: int = 1, page_size: int | None = None) -> PagedResult:
        """
        Fetch one page of ``resource``.
        """

        size = page_size or self._page_size
        payload = self._request_json(
            method="GET",
            url=f"{self._base_url}/{resource.strip('/')}",
            params={"page": page, "pageSize": size},
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Accept": "application/json",
            },
        )
        return self._parse_page(payload, resource=resource, page=page, page_size=size)

    def fetch_all(self, resource: str, page_size: int | None = None) -> list[Any]:
        """
        Drain every page of ``resource`` sequentially.

        Stops on ``hasMore`` false, on an empty page, on a page identical to
        one already read, and once the reported ``totalCount`` is reached.
        """

        records: list[Any] = []
        seen_pages: set[int] = set()
        page = 1
        while True:
            result = self.fetch_page(resource, page=page, page_size=page_size)
            fingerprint = hash(json.dumps(result.data, sort_keys=True, default=str))
            if result.data and fingerprint in seen_pages:
                logger.warning(
                    "Repeated page content source=%s resource=%s page=%s; stopping pagination",
                    self.source,
                    resource,
                    page,
                )
                break
            seen_pages.add(fingerprint)
            records.extend(result.data)
            if not result.has_more:
                break
            if not result.data:
                logger.warning(
                    "Empty page reported has_more source=%s resource=%s page=%s; stopping pagination",
                    self.source,
                    resource,
                    page,
                )
                break
            if result.total_count > len(result.data) and len(records) >= result.total_count:
                logger.warning(
                    "Reported total reached while has_more is set source=%s resource=%s total=%s page=%s",
                    self.source,
                    resource,
                    result.total_count,
                    page,
                )
                break
            page += 1

        logger.info(
            "Fetched all records source=%s resource=%s records=%s pages=%s",
            self.source,
            resource,
            len(records),
            page,
        )
        return records

    def test_connection(self) -> ConnectionCheck:
        try:
            self.fetch_page(self.CONTACTS, page=1, page_size=1)
        except ConnectorRequestError as exc:
            logger.warning("Connection check failed source=%s error=%s", self.source, exc)
            return ConnectionCheck(ok=False, error=str(exc))
        except Exception as exc:
            logger.exception("Unexpected connection check failure source=%s", self.source)
            return ConnectionCheck(ok=False, error=f"{type(exc).__name__}: {exc}")
        return ConnectionCheck(ok=True)

    def get_contacts(self, page: int = 1, page_size: int | None = None) -> PagedResult:
        return self.fetch_page(self.CONTACTS, page=page, page_size=page_size)

    def get_jobs(self, page: int = 1, page_size: int | None = None) -> PagedResult:
        return self.fetch_page(self.JOBS, page=page, page_size=page_size)

    def fetch_all_contacts(self) -> list[Any]:
        return self.fetch_all(self.CONTACTS)

    def fetch_all_jobs(self) -> list[Any]:
        return self.fetch_all(self.JOBS)

    def _parse_page(self, payload: Any, *, resource: str, page: int, page_size: int) -> PagedResult:
        if not isinstance(payload, dict):
            raise ConnectorRequestError(f"{self.source}: unexpected {resource} page format.")

        raw_data = payload.get("data")
        if raw_data is None:
            raw_data = []
        if not isinstance(raw_data, list):
            raise ConnectorRequestError(f"{self.source}: {resource} page 'data' is not a list.")
        data = list(raw_data)
        malformed = sum(1 for row in data if not isinstance(row, dict))
        if malformed:
            logger.warning(
                "Non-object rows kept for the ledger source=%s resource=%s page=%s count=%s",
                self.source,
                resource,
                page,
                malformed,
            )

        total_count = _as_int(payload.get("totalCount"), default=len(data))
        current_page = _as_int(payload.get("page"), default=page)
        current_size = _as_int(payload.get("pageSize"), default=page_size)

        has_more_raw = payload.get("hasMore")
        if isinstance(has_more_raw, bool):
            has_more = has_more_raw
        else:
            has_more = current_page * current_size < total_count

        return PagedResult(
            data=data,
            total_count=total_count,
            page=current_page,
            page_size=current_size,
            has_more=has_more,
        )


def _as_int(value: Any, *, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
