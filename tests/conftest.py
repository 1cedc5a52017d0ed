"""
Shared pytest fixtures.

Uses a file-backed SQLite database so no Postgres is required for tests.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_pocketbrain.db")

from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine, delete  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from pocketbrain.db.base import Base, get_db  # noqa: E402
from pocketbrain.main import app  # noqa: E402
from pocketbrain.models import Activity, Domain, LogEntry  # noqa: E402

SQLITE_URL = "sqlite:///./test_pocketbrain.db"

engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_tables():
    """Every test starts from empty tables."""
    yield
    db = TestingSessionLocal()
    try:
        db.execute(delete(LogEntry))
        db.execute(delete(Activity))
        db.execute(delete(Domain))
        db.commit()
    finally:
        db.close()


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(db):
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def make_log(db):
    """Insert a log directly, `age` before now (UTC)."""
    def _make(
        description: str,
        age: timedelta = timedelta(minutes=5),
        domain_id=None,
        activity_id=None,
        **fields,
    ) -> LogEntry:
        created_at = fields.pop("created_at", datetime.now(tz=timezone.utc) - age)
        entry = LogEntry(
            content=fields.pop("content", description),
            description=description,
            user_input=fields.pop("user_input", description),
            domain_id=domain_id,
            activity_id=activity_id,
            mood_score=fields.pop("mood_score", 5),
            energy_level=fields.pop("energy_level", 5),
            productivity_score=fields.pop("productivity_score", 5),
            created_at=created_at,
            updated_at=created_at,
            **fields,
        )
        db.add(entry)
        db.commit()
        db.refresh(entry)
        return entry
    return _make
