"""Portfolio Contact Service - FastAPI server for the portfolio contact form."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.shared import config
from src.shared.contact.dependencies import build_contact_store, build_csrf_validator, build_rate_limiter
from src.shared.contact.errors import ContactIntakeError
from src.shared.contact.routes import RESPONSE_HEADERS, contact_error_response, router as contact_router
from src.shared.database import SessionLocal, init_db

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Portfolio Contact Service",
    description="Contact form intake for the portfolio site",
    version="0.1.0"
)

# One instance of each pipeline component per process
app.state.rate_limiter = build_rate_limiter(SessionLocal)
app.state.csrf_validator = build_csrf_validator()
app.state.contact_store = build_contact_store(SessionLocal)


# Initialize database on startup
@app.on_event("startup")
async def startup_event():
    try:
        init_db()
        logging.info("Database initialization completed on startup")
    except Exception as e:
        # Log error but don't crash the app; store writes report their own failures
        logging.error(f"Database initialization error on startup: {str(e)}")


app.include_router(contact_router)


# Exception handlers make sure every error response carries the CORS and security headers
@app.exception_handler(ContactIntakeError)
async def contact_intake_exception_handler(request: Request, exc: ContactIntakeError):
    """Render contact pipeline failures as {"error": ...} without backend details."""
    if exc.status_code >= 500:
        logging.error(f"Contact intake failed: {exc.detail}")
    else:
        logging.info(f"Contact intake rejected ({exc.status_code}): {exc.detail or exc.public_message}")
    return contact_error_response(exc)


@app.exception_handler(StarletteHTTPException)
async def starlette_http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Ensure CORS headers are added to Starlette HTTP exceptions (404, 405)."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail} if isinstance(exc.detail, (str, dict)) else {"error": str(exc.detail)},
        headers={**RESPONSE_HEADERS, **(exc.headers or {})}
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Ensure CORS headers are added to all exceptions."""
    logging.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error"},
        headers=RESPONSE_HEADERS
    )


@app.get("/")
async def root():
    return {"message": "Portfolio Contact Service is running", "status": "ok"}


@app.get("/health")
async def health():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
