"""
Warm Intro Graph - Relationship scoring and path discovery
FastAPI Application Entry Point

Run locally with:

    uvicorn api.main:app --host 127.0.0.1 --port 8000
"""
# Load environment variables from .env file first, before any imports
from dotenv import load_dotenv
load_dotenv()

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from api.routes import graph, admin
from api.services.errors import InvalidInputError, StorageError
from config.settings import settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan - startup and shutdown."""
    # Startup: open the evidence store so schema problems surface immediately
    try:
        from api.services.evidence_store import get_evidence_store
        store = get_evidence_store()
        logger.info(f"Evidence store ready at {store.db_path}")
    except StorageError as e:
        logger.error(f"Failed to open evidence store: {e}")

    yield

    # Shutdown
    from api.services.evidence_store import reset_evidence_store
    reset_evidence_store()
    logger.info("Evidence store released")


app = FastAPI(
    title="Warm Intro Graph",
    description="Relationship strength scoring and warm introduction path discovery",
    version="0.1.0",
    lifespan=lifespan
)

# CORS middleware for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(graph.router)
app.include_router(admin.router)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Convert validation errors to 400 with clear messages."""
    errors = exc.errors()

    # Sanitize errors for JSON serialization (convert bytes to string)
    sanitized_errors = []
    for error in errors:
        sanitized = dict(error)
        if "input" in sanitized and isinstance(sanitized["input"], bytes):
            sanitized["input"] = sanitized["input"].decode("utf-8", errors="replace")
        sanitized.pop("ctx", None)
        sanitized_errors.append(sanitized)

    return JSONResponse(
        status_code=400,
        content={"error": "Validation error", "detail": sanitized_errors}
    )


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError):
    """Engine input errors that escape a route become 400s."""
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid input", "detail": exc.message, "field": exc.field}
    )


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    """Storage failures that escape a route become 503s."""
    logger.error(f"Unhandled storage failure during {exc.operation}: {exc.message}")
    return JSONResponse(
        status_code=503,
        content={"error": "Storage unavailable", "detail": exc.operation, "retryable": exc.retryable}
    )


@app.get("/health")
async def health_check():
    """Health check endpoint that verifies the evidence store opens."""
    from api.services.evidence_store import get_evidence_store

    checks = {}
    try:
        get_evidence_store().count()
        checks["evidence_store"] = True
    except StorageError as e:
        logger.error(f"Health check: evidence store unavailable: {e}")
        checks["evidence_store"] = False

    all_healthy = all(checks.values())

    return {
        "status": "healthy" if all_healthy else "degraded",
        "service": "warm-intro-graph",
        "checks": checks,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
