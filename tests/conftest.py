"""Shared test fixtures."""
import os

os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, select

from barbershop.allocator import AppointmentAllocator, SlotLocks
from barbershop.db import get_session, init_db, make_engine
from barbershop.deps import get_notification_hub
from barbershop.main import app
from barbershop.models import Service, User, WorkingHours
from barbershop.notifications import NotificationHub


def upcoming(weekday: int) -> date:
    """A date on ``weekday`` (0=Mon, Python style) at least a week ahead."""
    today = date.today()
    return today + timedelta(days=(weekday - today.weekday()) % 7 + 7)


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite so several sessions (and threads) share one DB."""
    engine = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def barber(session) -> User:
    user = User(email="barber@shop.test", password_hash="x", first_name="Joe", last_name="Barber", role="barber")
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def client_user(session) -> User:
    user = User(email="ana@client.test", password_hash="x", first_name="Ana", last_name="Silva", role="client")
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def service(session) -> Service:
    return session.exec(select(Service).order_by(Service.id)).first()


@pytest.fixture
def monday() -> date:
    return upcoming(0)


@pytest.fixture
def monday_hours(session, barber) -> WorkingHours:
    """Monday (day_of_week=1) 09:00-11:00."""
    hours = WorkingHours(barber_id=barber.id, day_of_week=1, is_working=True, start_time="09:00", end_time="11:00")
    session.add(hours)
    session.commit()
    session.refresh(hours)
    return hours


@pytest.fixture
def hub() -> NotificationHub:
    return NotificationHub()


@pytest.fixture
def received(hub):
    """Events published to the hub during the test."""
    events = []
    hub.subscribe(events.append)
    return events


@pytest.fixture
def allocator(session, hub) -> AppointmentAllocator:
    return AppointmentAllocator(session, sink=hub, auto_confirm=True, locks=SlotLocks())


@pytest.fixture
def api(engine, hub):
    """TestClient bound to the per-test database and hub."""

    def override_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_notification_hub] = lambda: hub
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def register(api):
    """Create a user through the API and return bearer headers for it."""

    def _register(email: str, role: str, first_name: str = "Test", last_name: str = "User"):
        password = "secret-pass"
        response = api.post(
            "/users",
            json={
                "email": email,
                "password": password,
                "first_name": first_name,
                "last_name": last_name,
                "role": role,
            },
        )
        assert response.status_code == 201, response.text
        user = response.json()

        login = api.post("/auth/login", data={"username": email, "password": password})
        assert login.status_code == 200, login.text
        headers = {"Authorization": f"Bearer {login.json()['access_token']}"}
        return user, headers

    return _register
