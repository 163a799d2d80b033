import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("USER_ID", "test-user")
os.environ["SYNC_SCHEDULER_ENABLED"] = "false"

from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import Settings
from app.database import Base
from app.errors import SourceUnavailable
from app.models import UserStats
from app.services.sessions import parse_session_document

TEST_USER_ID = "test-user"


class FakeSessionSource:
    """In-memory stand-in for the Firestore sessions collection."""

    def __init__(self, records=None, leaky=False):
        self.records = list(records or [])
        # A leaky source also returns sessions stamped exactly at the bound.
        self.leaky = leaky
        self.fail_with = None
        self.queries = []

    def add(self, record):
        self.records.append(record)

    def query_sessions_after(self, after: datetime):
        self.queries.append(after)
        if self.fail_with is not None:
            raise self.fail_with
        if self.leaky:
            return [r for r in self.records if r.timestamp >= after]
        return [r for r in self.records if r.timestamp > after]


def make_session(timestamp, treatments=None, total_images=None, user_id=None):
    doc = {"timestamp": timestamp}
    if treatments is not None:
        doc["treatments"] = treatments
    if total_images is not None:
        doc["total_images"] = total_images
    if user_id is not None:
        doc["user_id"] = user_id
    return parse_session_document(doc)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def settings():
    return Settings(database_url="sqlite://", user_id=TEST_USER_ID, scheduler_enabled=False)


@pytest.fixture
def source():
    return FakeSessionSource()


@pytest.fixture
def unavailable_source():
    source = FakeSessionSource()
    source.fail_with = SourceUnavailable("firestore is down")
    return source


@pytest.fixture
def seed_stats(db):
    def _seed(user_id=TEST_USER_ID, **counts):
        row = UserStats(user_id=user_id, **counts)
        db.add(row)
        db.commit()
        return row
    return _seed
