"""
Rate limiting for contact form submissions.

A fixed window per client identity: the first request from a key opens a
window of `interval` seconds, and at most `limit` requests are admitted until
it elapses. Counters live in a pluggable store so a single process can keep
them in memory while multi-instance deployments share them through the
database.
"""

import logging
import time
from collections import OrderedDict
from threading import Lock
from typing import Callable, Optional, Tuple

from fastapi import Request
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from src.shared.contact.database import ContactRateLimit

UNKNOWN_CLIENT = "unknown"


def get_client_ip(request: Request) -> str:
    """Get client identity for rate limiting."""
    # Check for forwarded IP (from proxy/load balancer)
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # Take the first IP in the chain
        client_ip = forwarded.split(",")[0].strip()
        if client_ip:
            return client_ip
    # Fallback to direct connection
    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT


class RateLimitResult:
    """Outcome of a rate limit check."""

    def __init__(self, allowed: bool, count: int, limit: int, retry_after: int):
        self.allowed = allowed
        self.count = count
        self.limit = limit
        self.retry_after = retry_after

    def __bool__(self) -> bool:
        return self.allowed

    def __repr__(self) -> str:
        state = "Allowed" if self.allowed else "Rejected"
        return f"<RateLimitResult {state} {self.count}/{self.limit}>"


class _Counter:
    __slots__ = ("count", "window_start")

    def __init__(self, count: int, window_start: float):
        self.count = count
        self.window_start = window_start


class InMemoryCounterStore:
    """
    Per-process counter table bounded to `max_keys` entries.

    When a new key would exceed the bound, the least recently used key is
    evicted. That client simply starts a fresh window on its next request.
    """

    def __init__(self, max_keys: int = 500):
        if max_keys <= 0:
            raise ValueError("max_keys must be positive")
        self.max_keys = max_keys
        self._counters: "OrderedDict[str, _Counter]" = OrderedDict()
        self._lock = Lock()

    def hit(self, key: str, limit: int, window_seconds: float, now: float) -> Tuple[bool, int]:
        """Atomically check and increment the counter for key."""
        with self._lock:
            counter = self._counters.get(key)
            if counter is None or now >= counter.window_start + window_seconds:
                counter = _Counter(count=0, window_start=now)
                self._counters[key] = counter
            self._counters.move_to_end(key)

            while len(self._counters) > self.max_keys:
                evicted_key, _ = self._counters.popitem(last=False)
                logging.debug(f"Rate limit table full, evicted counter for {evicted_key}")

            if counter.count >= limit:
                return False, counter.count
            counter.count += 1
            return True, counter.count

    def reset(self, key: str) -> None:
        with self._lock:
            self._counters.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._counters)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._counters


class DatabaseCounterStore:
    """
    Counter table shared through the database.
    Works across multiple instances of the service.

    Each check runs in its own transaction with the key's row locked, so
    concurrent requests for one key are serialized by the database.
    """

    def __init__(self, session_factory, max_keys: int = 500):
        if max_keys <= 0:
            raise ValueError("max_keys must be positive")
        self.session_factory = session_factory
        self.max_keys = max_keys

    def hit(self, key: str, limit: int, window_seconds: float, now: float) -> Tuple[bool, int]:
        """Atomically check and increment the counter for key."""
        try:
            return self._hit(key, limit, window_seconds, now)
        except IntegrityError:
            # Another instance created the row first; its row is now visible
            logging.info(f"Concurrent rate limit insert for {key}, retrying")
            return self._hit(key, limit, window_seconds, now)

    def _hit(self, key: str, limit: int, window_seconds: float, now: float) -> Tuple[bool, int]:
        db = self.session_factory()
        try:
            counter = db.query(ContactRateLimit).filter(
                ContactRateLimit.id == key
            ).with_for_update().first()

            if counter is None:
                counter = ContactRateLimit(id=key, count=0, window_start=now, last_seen=now)
                db.add(counter)
                db.flush()
                self._evict_least_recent(db, keep=key)
            elif now >= counter.window_start + window_seconds:
                counter.count = 0
                counter.window_start = now
            counter.last_seen = now

            if counter.count >= limit:
                db.commit()
                return False, counter.count

            counter.count += 1
            count = counter.count
            db.commit()
            return True, count
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def _evict_least_recent(self, db, keep: str) -> None:
        total = db.query(func.count(ContactRateLimit.id)).scalar() or 0
        overflow = total - self.max_keys
        if overflow <= 0:
            return
        stale_ids = [
            row.id for row in db.query(ContactRateLimit.id)
            .filter(ContactRateLimit.id != keep)
            .order_by(ContactRateLimit.last_seen.asc())
            .limit(overflow)
        ]
        db.query(ContactRateLimit).filter(
            ContactRateLimit.id.in_(stale_ids)
        ).delete(synchronize_session=False)
        logging.debug(f"Rate limit table full, evicted {len(stale_ids)} counters")

    def reset(self, key: str) -> None:
        db = self.session_factory()
        try:
            db.query(ContactRateLimit).filter(ContactRateLimit.id == key).delete()
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


class RateLimiter:
    """
    Fixed-window rate limiter.

    Args:
        interval: Window length in seconds
        unique_tokens_per_interval: Maximum number of client keys tracked at once
        store: Counter store; defaults to an in-memory store bounded by
            unique_tokens_per_interval
        clock: Returns the current time in seconds
    """

    def __init__(
        self,
        interval: int = 60,
        unique_tokens_per_interval: int = 500,
        store=None,
        clock: Optional[Callable[[], float]] = None,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self.unique_tokens_per_interval = unique_tokens_per_interval
        self.store = store if store is not None else InMemoryCounterStore(unique_tokens_per_interval)
        self.clock = clock or time.time

    def check(self, limit: int, key: str) -> RateLimitResult:
        """
        Count a request for key against limit.

        Returns:
            RateLimitResult; falsy when the request must be rejected
        """
        if not isinstance(limit, int) or isinstance(limit, bool) or limit <= 0:
            raise ValueError(f"limit must be a positive integer, got {limit!r}")
        if not key:
            raise ValueError("key must not be empty")

        allowed, count = self.store.hit(key, limit, self.interval, self.clock())
        if not allowed:
            logging.warning(f"Rate limit exceeded for {key} ({count}/{limit} per {self.interval}s)")
        return RateLimitResult(allowed=allowed, count=count, limit=limit, retry_after=self.interval)

    def reset(self, key: str) -> None:
        self.store.reset(key)
