import os
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Set testing environment before the app reads its settings
os.environ["TESTING"] = "1"
os.environ["TEST_DATABASE_URL"] = "sqlite:///./test.db"

from app.main import app
from app.api.deps import get_clock, get_notifier
from app.core.database import Base, get_db, get_redis
from app.core.security import UserRole
from app.models.user import User
from app.services.appointment_service import AppointmentService
from app.services.notifications import NotificationOutbox

SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Fixed "now" for every test: 2025-01-01 09:00
NOW = datetime(2025, 1, 1, 9, 0)

class FakeRedis:
    """In-memory stand-in for the few Redis commands the rate limiter uses."""

    def __init__(self):
        self.data = {}

    def setex(self, key, time, value):
        self.data[key] = str(value)
        return True

    def get(self, key):
        return self.data.get(key)

    def incr(self, key):
        self.data[key] = str(int(self.data.get(key, "0")) + 1)
        return int(self.data[key])

class RecordingNotifier:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.confirmations = []
        self.cancellations = []

    async def notify_confirmation(self, contact, scheduled_at, treatment_type):
        if self.fail:
            raise ConnectionError("SMTP server unreachable")
        self.confirmations.append((contact, scheduled_at, treatment_type))

    async def notify_cancellation(self, contact, scheduled_at):
        if self.fail:
            raise ConnectionError("SMTP server unreachable")
        self.cancellations.append((contact, scheduled_at))

def override_get_db():
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()

@pytest.fixture(scope="function")
def test_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def db_session(test_db):
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

@pytest.fixture
def notifier():
    return RecordingNotifier()

@pytest.fixture
def client(test_db, notifier):
    fake_redis = FakeRedis()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = lambda: fake_redis
    app.dependency_overrides[get_clock] = lambda: (lambda: NOW)
    app.dependency_overrides[get_notifier] = lambda: notifier

    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client

    app.dependency_overrides.clear()

@pytest.fixture
def patient(db_session):
    user = User(
        email="ana@example.com",
        password_hash="not-a-real-hash",
        first_name="Ana",
        last_name="Lopez",
        role=UserRole.PATIENT,
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user

@pytest.fixture
def now():
    return NOW

@pytest.fixture
def outbox():
    return NotificationOutbox()

@pytest.fixture
def service(db_session, outbox):
    return AppointmentService(db_session, clock=lambda: NOW, outbox=outbox)

@pytest.fixture
def login(client):
    """Register a user through the API and return bearer headers."""
    def _login(email, role=UserRole.PATIENT, password="Password123"):
        client.post("/api/v1/auth/register", json={
            "email": email,
            "password": password,
            "first_name": email.split("@")[0].title(),
            "last_name": "Test",
        })
        if role != UserRole.PATIENT:
            # Registration only creates patients; admins are promoted in the database
            db = TestingSessionLocal()
            try:
                db.query(User).filter(User.email == email).update({"role": role})
                db.commit()
            finally:
                db.close()
        response = client.post("/api/v1/auth/login", json={"email": email, "password": password})
        token = response.json()["access_token"]
        return {"Authorization": f"Bearer {token}"}

    return _login
