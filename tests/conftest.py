from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from oludeniz_tours import main
from oludeniz_tours.auth_helper import Identity
from oludeniz_tours.booking_app.database import get_db, init_db
from oludeniz_tours.booking_app.pipeline import skipped


@pytest.fixture
def engine():
    eng = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    init_db(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def identity():
    return Identity(id="user-1", email="a@x.com", display_name="Ayla Demir", phone="+905551112233")


@pytest.fixture
def other_identity():
    return Identity(id="user-2", email="b@x.com", display_name="Burak", phone="")


@pytest.fixture
def admin_identity():
    return Identity(id="admin-1", email="ops@x.com", display_name="Ops", roles=frozenset({"admin"}))


@pytest.fixture
def calendar():
    bridge = Mock()
    bridge.create_event.return_value = "evt-123"
    return bridge


@pytest.fixture
def notifier():
    n = Mock()
    n.notify_new_booking.return_value = []
    n.notify_status_change.return_value = skipped("whatsapp_status", "test")
    return n


@pytest.fixture
def make_client(session_factory, calendar, notifier):
    """Build a TestClient acting as ``identity`` (or unauthenticated when None)."""

    def override_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    def _make(identity=None):
        overrides = main.app.dependency_overrides
        overrides.clear()
        overrides[get_db] = override_db
        overrides[main.get_calendar_bridge] = lambda: calendar
        overrides[main.get_notifier] = lambda: notifier
        if identity is not None:
            overrides[main.get_current_identity] = lambda: identity
        return TestClient(main.app)

    yield _make
    main.app.dependency_overrides.clear()


def booking_payload(**overrides):
    payload = {
        "tour_name": "Solo Flight",
        "booking_date": "2025-06-01",
        "tour_start_time": "09:00",
        "adults": 2,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_payload():
    return booking_payload
