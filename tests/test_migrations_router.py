from __future__ import annotations

import uuid

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.routers.migrations import router
from app.connectors import ApiError
from app.mappers import AccuLynxMapper
from app.services.migration_preview_service import MigrationPreviewService, get_migration_preview_service
from app.services.migration_service import get_migration_service
from db.repositories import MigrationJobRepository
from db.session import get_db
from tests.factories import ORG_ID, SOURCE, USER_ID, FakeAccuLynxConnector, make_contact, make_job


@pytest.fixture()
def connector() -> FakeAccuLynxConnector:
    return FakeAccuLynxConnector(
        contacts=[make_contact("c1"), make_contact("c2")],
        jobs=[make_job("j1", contact_id="c1")],
    )


@pytest.fixture()
def client(session_factory, build_service, connector):
    application = FastAPI()
    application.include_router(router)

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    application.dependency_overrides[get_db] = _get_db
    application.dependency_overrides[get_migration_service] = lambda: build_service(connector)
    application.dependency_overrides[get_migration_preview_service] = lambda: MigrationPreviewService(
        connector_factory=lambda credential, base_url: connector,
        mapper=AccuLynxMapper(source_name=SOURCE),
        source=SOURCE,
        default_sample_size=100,
    )
    with TestClient(application) as test_client:
        yield test_client


def _run(client: TestClient, **overrides) -> dict:
    body = {"org_id": ORG_ID, "user_id": USER_ID, "api_key": "secret"}
    body.update(overrides)
    response = client.post("/migrations/acculynx", json=body)
    assert response.status_code == 200, response.text
    return response.json()


class TestRunEndpoint:
    def test_runs_migration_and_returns_stats(self, client) -> None:
        payload = _run(client)

        assert payload["success"] is True
        assert payload["stats"]["contacts"] == {"imported": 2, "skipped": 0, "errors": 0}
        assert payload["stats"]["jobs"] == {"imported": 1, "skipped": 0, "errors": 0}
        assert payload["errors"] == []

    def test_active_run_returns_conflict(self, client, session_factory) -> None:
        with session_factory() as session:
            MigrationJobRepository(session).create_job(org_id=ORG_ID, user_id=USER_ID, source=SOURCE)
            session.commit()

        response = client.post(
            "/migrations/acculynx",
            json={"org_id": ORG_ID, "user_id": USER_ID, "api_key": "secret"},
        )

        assert response.status_code == 409
        assert "already running" in response.json()["detail"]

    def test_missing_api_key_is_rejected(self, client) -> None:
        response = client.post("/migrations/acculynx", json={"org_id": ORG_ID, "user_id": USER_ID})

        assert response.status_code == 422


class TestHistoryEndpoints:
    def test_list_and_get_job(self, client) -> None:
        migration_id = _run(client)["migration_id"]

        listing = client.get("/migrations", params={"org_id": ORG_ID})
        detail = client.get(f"/migrations/{migration_id}")

        assert listing.status_code == 200
        assert [job["id"] for job in listing.json()["jobs"]] == [migration_id]
        assert detail.status_code == 200
        assert detail.json()["status"] == "completed"
        assert detail.json()["imported_count"] == 5

    def test_unknown_job_returns_404(self, client) -> None:
        missing = uuid.uuid4()

        assert client.get(f"/migrations/{missing}").status_code == 404
        assert client.get(f"/migrations/{missing}/items").status_code == 404
        assert client.get(f"/migrations/{missing}/summary").status_code == 404

    def test_items_and_summary(self, client) -> None:
        migration_id = _run(client)["migration_id"]

        items = client.get(f"/migrations/{migration_id}/items", params={"entity_type": "contact"})
        summary = client.get(f"/migrations/{migration_id}/summary")

        assert [item["external_id"] for item in items.json()["items"]] == ["c1", "c2"]
        assert summary.json()["stats"]["leads"] == {"imported": 1, "skipped": 0, "errors": 0}
        assert summary.json()["stats"]["properties"]["imported"] == 1


class TestPreviewEndpoint:
    def test_preview_returns_assessment(self, client) -> None:
        response = client.post(
            "/migrations/acculynx/preview",
            json={"org_id": ORG_ID, "api_key": "secret", "sample_size": 50},
        )

        assert response.status_code == 200
        payload = response.json()
        assert payload["total_contacts"] == 2
        assert payload["total_jobs"] == 1
        assert payload["duplicate_rate"] == 0.0
        assert len(payload["sample_contacts"]) == 2

    def test_preview_rejects_out_of_range_sample_size(self, client) -> None:
        response = client.post(
            "/migrations/acculynx/preview",
            json={"org_id": ORG_ID, "api_key": "secret", "sample_size": 5},
        )

        assert response.status_code == 422

    def test_upstream_failure_returns_bad_gateway(self, client, connector) -> None:
        connector.contacts_error = ApiError("acculynx", 503, "maintenance")

        response = client.post(
            "/migrations/acculynx/preview",
            json={"org_id": ORG_ID, "api_key": "secret"},
        )

        assert response.status_code == 502
