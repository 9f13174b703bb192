"""FastAPI application factory and main entry point."""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..config import get_settings
from ..db.connection import get_db
from ..errors import (
    DuplicateReviewError,
    InsufficientFundsError,
    InvalidStateError,
    NotFoundError,
    PermanentProviderError,
    PersistenceConflictError,
    ReviewFlowError,
    TransientProviderError,
    ValidationError,
)
from ..logging.config import configure_logging, get_logger
from .middleware import CorrelationIdMiddleware
from .routes import admin, brand_voice, credits, health, responses, reviews

logger = get_logger(__name__)

# Lookup walks the exception's MRO, so a subclass entry overrides its base.
ERROR_STATUS_CODES: dict[type[ReviewFlowError], int] = {
    InsufficientFundsError: 402,
    TransientProviderError: 503,
    PermanentProviderError: 502,
    PersistenceConflictError: 409,
    ValidationError: 422,
    NotFoundError: 404,
    InvalidStateError: 409,
    DuplicateReviewError: 409,
}


def status_for(exc: ReviewFlowError) -> int:
    """Map a domain error to its HTTP status."""
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    settings = get_settings()

    logger.info(
        "Starting application",
        service=settings.service_name,
        version=settings.service_version,
        environment=settings.environment,
    )

    db = get_db()
    try:
        await db.connect()
        await db.create_tables()
        app.state.db_initialized = True
        logger.info("Database connection established and tables created")
    except (SQLAlchemyError, OSError) as e:
        app.state.db_initialized = False
        # Keep serving; /health reports the database as down.
        logger.error("Database initialization failed", error=str(e))

    yield

    logger.info("Shutting down application")
    await db.close()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    configure_logging(
        level=settings.logging.level,
        json_format=settings.logging.json_format,
        service_name=settings.service_name,
        version=settings.service_version,
    )

    app = FastAPI(
        title="ReviewFlow API",
        description="Review responses drafted by AI, metered by a monthly credit allowance",
        version=settings.service_version,
        docs_url="/docs" if settings.api.debug else None,
        redoc_url="/redoc" if settings.api.debug else None,
        openapi_url="/openapi.json" if settings.api.debug else None,
        lifespan=lifespan,
    )

    # Middleware order matters: first added = last executed
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Correlation-ID", "Retry-After"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    app.add_exception_handler(ReviewFlowError, domain_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(health.router, tags=["Health"])
    app.include_router(reviews.router)
    app.include_router(responses.router)
    app.include_router(credits.router)
    app.include_router(brand_voice.router)
    app.include_router(admin.router)

    return app


def _error_response(
    request: Request,
    status_code: int,
    error: dict[str, Any],
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    correlation_id = getattr(request.state, "correlation_id", None)
    error["correlation_id"] = correlation_id

    response_headers = dict(headers or {})
    if correlation_id:
        response_headers["X-Correlation-ID"] = correlation_id

    return JSONResponse(
        status_code=status_code,
        content={"error": error},
        headers=response_headers,
    )


async def domain_exception_handler(
    request: Request,
    exc: ReviewFlowError,
) -> JSONResponse:
    """Render domain errors with their stable code."""
    status_code = status_for(exc)
    headers: dict[str, str] = {}
    retry_after = getattr(exc, "retry_after_seconds", None)
    if retry_after is not None:
        headers["Retry-After"] = str(retry_after)

    logger.info(
        "Request failed",
        path=request.url.path,
        code=exc.code,
        status_code=status_code,
    )
    return _error_response(request, status_code, exc.to_dict(), headers)


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """Handle HTTP exceptions."""
    return _error_response(
        request,
        exc.status_code,
        {"code": exc.status_code, "message": exc.detail},
        getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Handle request validation errors."""
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    return _error_response(
        request,
        422,
        {"code": "VALIDATION_ERROR", "message": "Validation Error", "details": errors},
    )


async def general_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
        error_type=type(exc).__name__,
    )
    return _error_response(
        request,
        500,
        {"code": "INTERNAL_ERROR", "message": "Internal Server Error"},
    )


def run() -> None:
    """Run the API with uvicorn using the configured host and port."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "reviewflow.api.main:create_app",
        factory=True,
        host=settings.api.host,
        port=settings.api.port,
        reload=settings.is_development and settings.api.debug,
    )
