"""Pytest fixtures: an isolated in-memory database and logged-in test clients."""
from typing import Callable, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from racekit import models, services
from racekit.db import Base, get_session
from racekit.main import app
from racekit.schemas import SignUp

PASSWORD = "secret123"


@pytest.fixture(scope="function")
def db_session() -> Session:
    """
    Fresh in-memory SQLite database per test.

    The app shares this session through the ``get_session`` override, so
    whatever a request commits is visible to the test straight away.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    def _override_get_session():
        yield session

    app.dependency_overrides[get_session] = _override_get_session
    try:
        yield session
    finally:
        app.dependency_overrides.pop(get_session, None)
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def make_user(db_session: Session) -> Callable[..., models.User]:
    """Factory for a registered user with the given role and status."""

    def _make(email: str, role: str = "user", status: Optional[str] = "active", full_name: str = "Test User") -> models.User:
        user = services.register_user(db_session, SignUp(email=email, password=PASSWORD, full_name=full_name))
        profile = services.get_profile(db_session, user.id)
        profile.role = role
        profile.status = status
        db_session.commit()
        return user

    return _make


def login(client: TestClient, email: str, password: str = PASSWORD):
    return client.post("/login", data={"email": email, "password": password}, follow_redirects=False)


@pytest.fixture
def client(db_session: Session) -> TestClient:
    # no context manager: the lifespan (logging, real engine, bootstrap admin) stays out of tests
    return TestClient(app)


@pytest.fixture
def admin_client(db_session: Session, make_user) -> TestClient:
    make_user("admin@example.com", role="admin", full_name="Admin")
    c = TestClient(app)
    assert login(c, "admin@example.com").status_code == 302
    return c


@pytest.fixture
def organizer_client(db_session: Session, make_user) -> TestClient:
    make_user("organizer@example.com", role="organizer", full_name="Organizer")
    c = TestClient(app)
    assert login(c, "organizer@example.com").status_code == 302
    return c


@pytest.fixture
def user_client(db_session: Session, make_user) -> TestClient:
    make_user("runner.desk@example.com", role="user", full_name="Desk Volunteer")
    c = TestClient(app)
    assert login(c, "runner.desk@example.com").status_code == 302
    return c


@pytest.fixture
def sample_runners(db_session: Session) -> list[models.Runner]:
    runners = [
        models.Runner(bib_number="101", full_name="Alice Tan", participant_id="P-001", category="Open", race_distance="21K"),
        models.Runner(bib_number="102", full_name="Bala Kumar", participant_id="P-002", category="Veteran", race_distance="10K"),
    ]
    db_session.add_all(runners)
    db_session.commit()
    return runners


@pytest.fixture
def sample_kits(db_session: Session, sample_runners) -> list[models.RaceKit]:
    services.generate_kits(db_session)
    return db_session.execute(select(models.RaceKit).order_by(models.RaceKit.kit_number)).scalars().all()
