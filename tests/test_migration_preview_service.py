from __future__ import annotations

from sqlalchemy import func, select

from app.mappers import AccuLynxMapper
from app.services.migration_preview_service import (
    MigrationPreviewService,
    build_recommendations,
    estimate_minutes,
)
from db.models.crm import Contact
from db.models.migration_job import MigrationJob
from db.repositories import CRMRepository
from tests.factories import ORG_ID, SOURCE, FakeAccuLynxConnector, make_contact, make_job


def _service(connector: FakeAccuLynxConnector) -> MigrationPreviewService:
    return MigrationPreviewService(
        connector_factory=lambda credential, base_url: connector,
        mapper=AccuLynxMapper(source_name=SOURCE),
        source=SOURCE,
        default_sample_size=100,
    )


class TestMigrationPreviewService:
    def test_reports_counts_samples_and_duplicates(self, db_session) -> None:
        CRMRepository(db_session).insert(
            Contact,
            org_id=ORG_ID,
            external_source=SOURCE,
            external_id="c1",
            values={"first_name": "Ann", "last_name": "Lee", "slug": "ann-lee"},
        )
        db_session.commit()
        connector = FakeAccuLynxConnector(
            contacts=[make_contact(f"c{n}") for n in range(1, 8)],
            jobs=[make_job(f"j{n}") for n in range(1, 5)],
        )

        preview = _service(connector).preview(db=db_session, org_id=ORG_ID, credential="key")

        assert preview.total_contacts == 7
        assert preview.total_jobs == 4
        assert preview.duplicate_contacts == 1
        assert preview.duplicate_jobs == 0
        assert len(preview.sample_contacts) == 5
        assert len(preview.sample_jobs) == 3
        assert preview.sample_jobs[0].mapped["lead"]["value_cents"] == 123450
        assert preview.estimated_minutes == 1
        assert preview.validation_warnings == []

    def test_preview_writes_nothing(self, db_session) -> None:
        connector = FakeAccuLynxConnector(contacts=[make_contact("c1")], jobs=[make_job("j1")])

        _service(connector).preview(db=db_session, org_id=ORG_ID, credential="key")

        assert db_session.scalar(select(func.count()).select_from(Contact)) == 0
        assert db_session.scalar(select(func.count()).select_from(MigrationJob)) == 0
        assert connector.calls == ["get_contacts", "get_jobs"]

    def test_flags_nameless_contacts_and_addressless_jobs(self, db_session) -> None:
        connector = FakeAccuLynxConnector(
            contacts=[{"id": "c1"}, make_contact("c2")],
            jobs=[{"id": "j1", "name": "No address"}, {"name": "No id"}],
        )

        preview = _service(connector).preview(db=db_session, org_id=ORG_ID, credential="key")

        assert preview.validation_warnings == [
            "contact c1: missing or invalid contact name",
            "job j1: missing property address",
            "job (missing id): job record has no id",
        ]

    def test_snake_case_names_are_not_flagged(self, db_session) -> None:
        connector = FakeAccuLynxConnector(
            contacts=[{"id": "c1", "first_name": "Ann"}, {"id": "c2", "last_name": "Lee"}, "junk"],
        )

        preview = _service(connector).preview(db=db_session, org_id=ORG_ID, credential="key")

        assert preview.validation_warnings == [
            "contact (missing id): missing or invalid contact name",
            "contact (missing id): contact record must be an object, got str",
        ]
        assert [sample.mapped["first_name"] for sample in preview.sample_contacts] == ["Ann", "Unknown"]

    def test_sample_size_is_clamped(self, db_session) -> None:
        connector = FakeAccuLynxConnector(contacts=[make_contact(f"c{n}") for n in range(30)])

        preview = _service(connector).preview(db=db_session, org_id=ORG_ID, credential="key", sample_size=1)

        assert preview.sampled_contacts == 10
        assert preview.total_contacts == 30


class TestPreviewHeuristics:
    def test_estimate_minutes(self) -> None:
        assert estimate_minutes(0, 0) == 0
        assert estimate_minutes(250, 120) == 5

    def test_recommendations(self, db_session) -> None:
        connector = FakeAccuLynxConnector(contacts=[make_contact("c1")])
        preview = _service(connector).preview(db=db_session, org_id=ORG_ID, credential="key")

        assert build_recommendations(preview, warning_count=0) == []
        assert len(build_recommendations(preview, warning_count=11)) == 1
