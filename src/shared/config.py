"""Environment configuration for the contact service."""

import os

# Load environment variables from .env file (for local development)
try:
    from dotenv import load_dotenv
    load_dotenv()
except ImportError:
    pass  # python-dotenv not installed, skip (fine for production)


def _env_int(name: str, default: int) -> int:
    """Read a positive integer from the environment, falling back to default."""
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

# Rate limiting: 10 submissions per client per minute, at most 500 clients tracked
CONTACT_RATE_LIMIT_MAX_REQUESTS = _env_int("CONTACT_RATE_LIMIT_MAX_REQUESTS", 10)
CONTACT_RATE_LIMIT_WINDOW_SECONDS = _env_int("CONTACT_RATE_LIMIT_WINDOW_SECONDS", 60)
CONTACT_RATE_LIMIT_UNIQUE_TOKENS = _env_int("CONTACT_RATE_LIMIT_UNIQUE_TOKENS", 500)
# 'memory' keeps counters per process, 'database' shares them across instances
CONTACT_RATE_LIMIT_BACKEND = os.environ.get("CONTACT_RATE_LIMIT_BACKEND", "memory").lower()

# CSRF: 'shape' only checks token length, 'signed' verifies a server-issued token
CONTACT_CSRF_MODE = os.environ.get("CONTACT_CSRF_MODE", "shape").lower()
CONTACT_CSRF_SECRET = os.environ.get("CONTACT_CSRF_SECRET")
CONTACT_CSRF_TOKEN_TTL_SECONDS = _env_int("CONTACT_CSRF_TOKEN_TTL_SECONDS", 3600)

CONTACT_STORE_TIMEOUT_SECONDS = _env_float("CONTACT_STORE_TIMEOUT_SECONDS", 10.0)
