import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.base.dependencies import get_busy_source, get_clock
from app.db.session import get_db
from app.db.tables import Base
from app.main import app
from app.services.calendar_client import CalendarBusySource
from tests.helpers import FakeCalendarClient, fixed_clock


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
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return fixed_clock()


@pytest.fixture
def calendar_client():
    return FakeCalendarClient()


@pytest.fixture
def busy_source(calendar_client, clock):
    return CalendarBusySource(client=calendar_client, clock=clock)


@pytest.fixture
def client(db, clock, busy_source):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_busy_source] = lambda: busy_source
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
