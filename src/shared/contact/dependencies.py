"""Builders and FastAPI dependencies for the contact pipeline components.

Components are built once per application and kept on ``app.state``; routes
receive them through ``Depends`` so tests can swap them with
``app.dependency_overrides``.
"""

from fastapi import Request

from src.shared import config
from src.shared.contact.csrf import CsrfValidator
from src.shared.contact.rate_limiting import DatabaseCounterStore, RateLimiter
from src.shared.contact.store import ContactStore, SqlAlchemyContactStore


def build_rate_limiter(session_factory=None) -> RateLimiter:
    """Build the rate limiter selected by CONTACT_RATE_LIMIT_BACKEND."""
    backend = config.CONTACT_RATE_LIMIT_BACKEND
    if backend == "memory":
        store = None
    elif backend == "database":
        if session_factory is None:
            from src.shared.database import SessionLocal
            session_factory = SessionLocal
        store = DatabaseCounterStore(session_factory, max_keys=config.CONTACT_RATE_LIMIT_UNIQUE_TOKENS)
    else:
        raise ValueError(f"Unknown CONTACT_RATE_LIMIT_BACKEND: {backend!r}")
    return RateLimiter(
        interval=config.CONTACT_RATE_LIMIT_WINDOW_SECONDS,
        unique_tokens_per_interval=config.CONTACT_RATE_LIMIT_UNIQUE_TOKENS,
        store=store,
    )


def build_csrf_validator() -> CsrfValidator:
    return CsrfValidator(
        mode=config.CONTACT_CSRF_MODE,
        secret=config.CONTACT_CSRF_SECRET,
        ttl_seconds=config.CONTACT_CSRF_TOKEN_TTL_SECONDS,
    )


def build_contact_store(session_factory=None) -> ContactStore:
    if session_factory is None:
        from src.shared.database import SessionLocal
        session_factory = SessionLocal
    return SqlAlchemyContactStore(session_factory)


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def get_csrf_validator(request: Request) -> CsrfValidator:
    return request.app.state.csrf_validator


def get_contact_store(request: Request) -> ContactStore:
    return request.app.state.contact_store
