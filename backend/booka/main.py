"""Booka: FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from booka.api.v1.auth import router as auth_router
from booka.api.v1.bookings import router as bookings_router
from booka.api.v1.rooms import router as rooms_router
from booka.api.v1.users import router as users_router
from booka.config import settings
from booka.exceptions import BookaError, ValidationError

# Configure root logger so all booka.* loggers output to stderr.
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler for startup and shutdown events."""
    yield
    # Shutdown: dispose engine connections
    from booka.database import engine

    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Room booking API with double-booking-safe reservations.",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BookaError)
async def booka_error_handler(request: Request, exc: BookaError) -> JSONResponse:
    """Render domain errors as ``{"detail": ..., "code": ...}``."""
    logger.info("%s %s -> %d %s", request.method, request.url.path, exc.status_code, exc.code)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render malformed request input with the same shape as service-level validation errors."""
    errors = exc.errors()
    message = ValidationError.message
    if errors:
        first = errors[0]
        message = str(first.get("msg", message)).removeprefix("Value error, ")
        field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
        if field:
            message = f"{field}: {message}"
    logger.info("%s %s -> 422 VALIDATION_ERROR (%s)", request.method, request.url.path, message)
    return JSONResponse(
        status_code=ValidationError.status_code,
        content={"detail": message, "code": ValidationError.code},
    )


# Routers
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(rooms_router)
app.include_router(bookings_router)


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "service": settings.app_name}


@app.get("/", tags=["root"])
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }
