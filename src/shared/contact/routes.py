"""Contact form intake endpoint for the portfolio site."""

import asyncio
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from src.shared import config
from src.shared.contact.csrf import CSRF_HEADER, CSRF_SESSION_COOKIE, CsrfValidator, generate_session_id
from src.shared.contact.dependencies import get_contact_store, get_csrf_validator, get_rate_limiter
from src.shared.contact.errors import (
    BackendPersistenceFailure,
    ClientAuthenticityFailure,
    ClientRateExceeded,
    ClientValidationFailure,
    ContactIntakeError,
    StoreError,
)
from src.shared.contact.input_validation import sanitize_fields, validate_email, validate_required
from src.shared.contact.rate_limiting import RateLimiter, get_client_ip
from src.shared.contact.schemas import (
    ContactResponse,
    ContactSubmission,
    CsrfTokenResponse,
    ErrorResponse,
)
from src.shared.contact.store import ContactStore

router = APIRouter(prefix="/functions", tags=["contact"])

# The form is served from a different origin than this endpoint
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, X-CSRF-Token",
    "Access-Control-Max-Age": "86400",
}

SECURITY_HEADERS = {
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Content-Security-Policy": "default-src 'self'",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}

RESPONSE_HEADERS = {**CORS_HEADERS, **SECURITY_HEADERS}

SUCCESS_MESSAGE = "Message sent successfully"
REQUIRED_FIELDS_MESSAGE = "All fields are required"
INVALID_EMAIL_MESSAGE = "Invalid email format"


def contact_response(status_code: int, content: dict, headers: dict = None) -> JSONResponse:
    """JSON response carrying the fixed CORS and security header set."""
    return JSONResponse(
        status_code=status_code,
        content=content,
        headers={**RESPONSE_HEADERS, **(headers or {})},
    )


def contact_error_response(exc: ContactIntakeError) -> JSONResponse:
    headers = {}
    if isinstance(exc, ClientRateExceeded):
        headers["Retry-After"] = str(exc.retry_after)
    return contact_response(exc.status_code, {"error": exc.public_message}, headers)


async def enforce_rate_limit(rate_limiter: RateLimiter, client_ip: str) -> None:
    """Raises ClientRateExceeded when client_ip is over the submission limit."""
    try:
        # The database counter store may wait on a row lock
        result = await run_in_threadpool(rate_limiter.check, config.CONTACT_RATE_LIMIT_MAX_REQUESTS, client_ip)
    except Exception as e:
        logging.error(f"Rate limit check failed for {client_ip}: {str(e)}", exc_info=True)
        raise ContactIntakeError(f"Rate limit check failed: {str(e)}") from e
    if not result.allowed:
        raise ClientRateExceeded(retry_after=result.retry_after, detail=f"{client_ip} over limit")


def enforce_csrf(csrf_validator: CsrfValidator, request: Request) -> None:
    token = request.headers.get(CSRF_HEADER)
    session_id = request.cookies.get(CSRF_SESSION_COOKIE)
    if not csrf_validator.validate(token, session_id):
        raise ClientAuthenticityFailure("CSRF token missing or malformed")


async def parse_submission(request: Request) -> dict:
    """
    Read the four form fields from the JSON body.

    Validation runs on the raw input so error messages reflect what the
    visitor typed; sanitization happens only once every check has passed.
    """
    try:
        payload = await request.json()
    except ValueError:
        raise ClientValidationFailure(REQUIRED_FIELDS_MESSAGE, "Body is not valid JSON")

    if not isinstance(payload, dict) or not validate_required(payload):
        raise ClientValidationFailure(REQUIRED_FIELDS_MESSAGE)
    if not validate_email(payload["email"]):
        raise ClientValidationFailure(INVALID_EMAIL_MESSAGE)
    return payload


async def persist_submission(store: ContactStore, submission: ContactSubmission, timeout: float) -> None:
    """Write one submission, treating a timeout like any other store failure. Never retried."""
    try:
        loop = asyncio.get_running_loop()
        # The write runs in a worker thread; on timeout the response no longer waits for it
        record = await asyncio.wait_for(loop.run_in_executor(None, store.create, submission), timeout=timeout)
    except asyncio.TimeoutError as e:
        logging.error(f"Contact store write timed out after {timeout}s")
        raise BackendPersistenceFailure("Store write timed out") from e
    except StoreError as e:
        logging.error(f"Failed to store contact submission: {str(e)}", exc_info=True)
        raise BackendPersistenceFailure(str(e)) from e
    except Exception as e:
        logging.error(f"Unexpected error storing contact submission: {str(e)}", exc_info=True)
        raise BackendPersistenceFailure(str(e)) from e
    logging.info(f"Stored contact submission {record.id}")


@router.options("/contact-form", status_code=204, include_in_schema=False)
async def contact_form_preflight():
    """CORS preflight; no other checks run."""
    return Response(status_code=204, headers=RESPONSE_HEADERS)


@router.post(
    "/contact-form",
    response_model=ContactResponse,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def submit_contact_form(
    request: Request,
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    csrf_validator: CsrfValidator = Depends(get_csrf_validator),
    store: ContactStore = Depends(get_contact_store),
):
    """
    Accept a contact form submission from the public site.

    Gates run in order and the first failure ends the request:
    - Rate limit per client IP (429)
    - CSRF token (403)
    - Required fields and email format (400)
    - Sanitize and store (500 on any store failure)
    """
    client_ip = get_client_ip(request)
    await enforce_rate_limit(rate_limiter, client_ip)
    enforce_csrf(csrf_validator, request)
    payload = await parse_submission(request)

    try:
        submission = ContactSubmission(**sanitize_fields(payload))
    except ValidationError:
        # e.g. a name made only of angle brackets is empty once sanitized
        raise ClientValidationFailure(REQUIRED_FIELDS_MESSAGE, "Field empty after sanitization")

    await persist_submission(store, submission, config.CONTACT_STORE_TIMEOUT_SECONDS)
    logging.info(f"Contact form submission accepted from {client_ip}")
    return contact_response(200, {"message": SUCCESS_MESSAGE})


@router.get("/contact-form/csrf-token", response_model=CsrfTokenResponse)
async def issue_csrf_token(csrf_validator: CsrfValidator = Depends(get_csrf_validator)):
    """
    Issue a CSRF token for the contact form.

    In signed mode the token is bound to a session id set as an HttpOnly
    cookie. In shape mode this just returns a random 32-character token.
    """
    if not csrf_validator.is_signed:
        return contact_response(200, {"csrf_token": csrf_validator.issue()})

    session_id = generate_session_id()
    response = contact_response(
        200,
        {"csrf_token": csrf_validator.issue(session_id), "expires_in": csrf_validator.ttl_seconds},
    )
    response.set_cookie(
        CSRF_SESSION_COOKIE,
        session_id,
        max_age=csrf_validator.ttl_seconds,
        httponly=True,
        secure=True,
        samesite="strict",
    )
    return response
