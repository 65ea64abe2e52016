"""Shared pytest fixtures: a throwaway SQLite database, app client and data factories."""

import os
import tempfile

# Configuration is read at import time, so the environment is set up first
_DB_DIR = tempfile.mkdtemp(prefix="anantam-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR}/anantam-test.sqlite"
os.environ["SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["RAZORPAY_KEY_ID"] = "rzp_test_key"
os.environ["RAZORPAY_KEY_SECRET"] = "rzp_test_secret"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
for _name in ("R2_ACCOUNT_ID", "R2_ACCESS_KEY_ID", "R2_SECRET_ACCESS_KEY", "SMTP_HOST", "RESEND_API_KEY"):
    os.environ.pop(_name, None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from anantam_api.database import Base, SessionLocal, engine  # noqa: E402
from anantam_api.domain.contact.router import contact_rate_limiter  # noqa: E402
from anantam_api.main import app as fastapi_app  # noqa: E402
from anantam_api.models import User, Workshop, WorkshopSession  # noqa: E402
from anantam_api.routes.auth import auth_rate_limiter  # noqa: E402
from anantam_api.security_utils import create_access_token, hash_password_bcrypt  # noqa: E402


async def _no_rate_limit():
    return None


@pytest.fixture(scope="session")
def app():
    fastapi_app.dependency_overrides[contact_rate_limiter] = _no_rate_limit
    fastapi_app.dependency_overrides[auth_rate_limiter] = _no_rate_limit
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def _schema():
    """Fresh tables for every test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture()
def client(app):
    return TestClient(app)


@pytest.fixture()
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def make_user(db):
    """Create a user and return (user, auth headers)."""
    counter = {"n": 0}

    def _make(role="user", email=None, name="Test User", password=None):
        counter["n"] += 1
        user = User(
            name=name,
            email=email or f"user{counter['n']}@example.com",
            password_hash=hash_password_bcrypt(password) if password else None,
            role=role,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user, {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _make


@pytest.fixture()
def make_workshop(db):
    """Create a workshop with {session_date: spots} sessions."""

    def _make(sessions=None, price="₹1000", is_active=True, title="Drone Basics", allocated=None):
        workshop = Workshop(
            title=title,
            description="Hands-on introduction to flying and maintaining drones",
            duration="2 days",
            schedule="Sat-Sun, 10AM-4PM",
            price=price,
            capacity=20,
            level="Beginner",
            curriculum=["Safety", "Flight basics"],
            is_active=is_active,
        )
        workshop.sessions = [
            WorkshopSession(
                session_date=d,
                spots=spots,
                allocated_spots=(allocated or {}).get(d, spots),
            )
            for d, spots in (sessions or {}).items()
        ]
        db.add(workshop)
        db.commit()
        db.refresh(workshop)
        return workshop

    return _make


@pytest.fixture()
def spots_left(db):
    """Current remaining seats for a session, read fresh from the database."""

    def _read(workshop_id, session_date):
        db.expire_all()
        session = (
            db.query(WorkshopSession)
            .filter(
                WorkshopSession.workshop_id == workshop_id,
                WorkshopSession.session_date == session_date,
            )
            .first()
        )
        return session.spots if session else None

    return _read
