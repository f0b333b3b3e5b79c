"""Failures of the contact intake pipeline.

Each error carries the HTTP status and the message shown to the visitor. The
message is fixed per error type so backend details never reach the client.
"""

from typing import Optional


class ContactIntakeError(Exception):
    """Base class for failures that end a contact form request."""
    status_code = 500
    public_message = "Internal server error"

    def __init__(self, detail: Optional[str] = None):
        # detail is for logs only, never rendered
        super().__init__(detail or self.public_message)
        self.detail = detail


class ClientRateExceeded(ContactIntakeError):
    """Too many submissions from one client; recoverable by waiting."""
    status_code = 429
    public_message = "Too many requests"

    def __init__(self, retry_after: int, detail: Optional[str] = None):
        super().__init__(detail)
        self.retry_after = retry_after


class ClientAuthenticityFailure(ContactIntakeError):
    """Missing or invalid CSRF token; the page must be reloaded for a fresh one."""
    status_code = 403
    public_message = "Invalid CSRF token"


class ClientValidationFailure(ContactIntakeError):
    """Missing field or malformed email; recoverable by correcting input."""
    status_code = 400

    def __init__(self, public_message: str, detail: Optional[str] = None):
        self.public_message = public_message
        super().__init__(detail)


class BackendPersistenceFailure(ContactIntakeError):
    """The record store was unreachable, timed out, or rejected the write."""
    status_code = 500
    public_message = "Internal server error"


class StoreError(Exception):
    """Raised by record store implementations when a write or read fails."""
