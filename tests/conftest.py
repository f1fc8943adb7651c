"""
Shared test fixtures: in-memory SQLite database and migration service
builders wired to a scripted connector.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import db.models  # noqa: F401 - registers all ORM models on Base.metadata
from app.mappers import AccuLynxMapper
from app.services.migration_service import MigrationService
from db.base import Base
from db.session import build_session_factory
from tests.factories import SOURCE, FakeAccuLynxConnector


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine) -> sessionmaker[Session]:
    return build_session_factory(engine)


@pytest.fixture()
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def build_service() -> Callable[..., MigrationService]:
    """
    Return a builder for a ``MigrationService`` wired to a fake connector.
    """

    def _build(
        connector: FakeAccuLynxConnector,
        *,
        mapper: AccuLynxMapper | None = None,
        stale_run_minutes: int = 120,
        clock: Callable[[], datetime] | None = None,
    ) -> MigrationService:
        return MigrationService(
            connector_factory=lambda credential, base_url: connector,
            mapper=mapper or AccuLynxMapper(source_name=SOURCE),
            source=SOURCE,
            stale_run_minutes=stale_run_minutes,
            clock=clock,
        )

    return _build
