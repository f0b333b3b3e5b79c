"""
Shared pytest fixtures for the contact service tests.
"""
import os

# Must be set before src.shared.database is imported
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from src.app import app
from src.shared.contact.csrf import CsrfValidator
from src.shared.contact.dependencies import get_contact_store, get_csrf_validator, get_rate_limiter
from src.shared.contact.rate_limiting import RateLimiter
from src.shared.contact.store import SqlAlchemyContactStore
from src.shared.database import Base

VALID_CSRF_TOKEN = "0123456789abcdef0123456789abcdef"

VALID_PAYLOAD = {
    "name": "Test User",
    "email": "test@example.com",
    "subject": "Hello",
    "message": "Hi there",
}


class FakeClock:
    """Manually advanced clock for window expiry tests."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def session_factory():
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    import src.shared.contact.database  # noqa: F401
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rate_limiter(clock):
    return RateLimiter(interval=60, unique_tokens_per_interval=500, clock=clock)


@pytest.fixture
def csrf_validator():
    return CsrfValidator()


@pytest.fixture
def contact_store(session_factory):
    return SqlAlchemyContactStore(session_factory)


@pytest.fixture
def client(rate_limiter, csrf_validator, contact_store):
    """Test client wired to fresh pipeline components."""
    app.dependency_overrides[get_rate_limiter] = lambda: rate_limiter
    app.dependency_overrides[get_csrf_validator] = lambda: csrf_validator
    app.dependency_overrides[get_contact_store] = lambda: contact_store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def headers():
    return {
        "X-CSRF-Token": VALID_CSRF_TOKEN,
        "X-Forwarded-For": "203.0.113.7",
    }


def failing_flush_factory(session_factory, failures: int):
    """
    Session factory whose first `failures` sessions raise IntegrityError on flush,
    as when another instance inserts the same rate limit key first.
    """
    state = {"remaining": failures}

    def factory():
        db = session_factory()
        if state["remaining"] > 0:
            state["remaining"] -= 1

            def flush(*args, **kwargs):
                raise IntegrityError("INSERT INTO contact_rate_limits", {}, Exception("duplicate key"))

            db.flush = flush
        return db

    return factory
