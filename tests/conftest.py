"""Shared pytest fixtures for the ingestion tests."""

import os
from datetime import datetime
from pathlib import Path

# Keep the module-level engine off MySQL while the package is imported under test.
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from bs4 import BeautifulSoup
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from sydney_events.crawlers.pipeline.store import CatalogStore
from sydney_events.crawlers.pipeline.types import RawCandidate
from sydney_events.db.session import init_db
from sydney_events.models.event import CatalogEvent


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def store(session_factory) -> CatalogStore:
    return CatalogStore(session_factory)


@pytest.fixture
def fetch_rows(session_factory):
    """Read back catalog rows for one source, ordered by id."""

    def _fetch(source: str | None = None) -> list[CatalogEvent]:
        with session_factory() as db:
            stmt = select(CatalogEvent).order_by(CatalogEvent.id)
            if source is not None:
                stmt = stmt.where(CatalogEvent.source == source)
            return list(db.scalars(stmt))

    return _fetch


@pytest.fixture
def now() -> datetime:
    return datetime(2025, 1, 10, 12, 0, 0)


@pytest.fixture
def jazz_night(now: datetime) -> RawCandidate:
    return RawCandidate(
        original_event_url="https://x/e1",
        title="Jazz Night",
        start_at=datetime(2025, 1, 17, 21, 0),
        venue_name="The Basement",
        description="Live jazz every Friday",
        category="Music",
        tags=["jazz", "live"],
        image_url="https://x/e1.jpg",
    )


@pytest.fixture
def fixtures_path() -> Path:
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def load_document(fixtures_path: Path):
    def _load(name: str) -> BeautifulSoup:
        html = (fixtures_path / name).read_text(encoding="utf-8")
        return BeautifulSoup(html, "html.parser")

    return _load
