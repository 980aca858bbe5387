"""
HR Management API - FastAPI Application

Pipeline (outermost first):
    SecureHeaders -> GZip -> RateLimiting (/api only) -> CORS -> BodySizeLimit -> Logging (development only)

Route groups mount under /api/<resource>; unmatched paths fall through to the
not-found handler and every raised error ends in the terminal error handler.
"""
import logging
import traceback
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.gzip import GZipMiddleware

from app.core.config import Config, settings
from app.core.exceptions import AppException, DatabaseConnectionError
from app.core.limiter import build_limiter
from app.core.logging import setup_logging
from app.core.middleware import (
    BodySizeLimitMiddleware,
    LoggingMiddleware,
    RateLimitingMiddleware,
    SecureHeadersMiddleware,
    UnhandledErrorMiddleware,
)
from app.core.schemas import ApiResponse, ErrorInfo
from app.dashboard.modals import DashboardContext
from app.database import Database
from app.routers.api_router import api_router

logger = logging.getLogger(__name__)


# ============================================================================
# LIFESPAN MANAGEMENT
# ============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifecycle manager.
    - Startup: connect the database before any traffic is accepted
    - Shutdown: release the connection pool
    """
    config: Config = app.state.config
    database: Database = app.state.database
    logger.info(f"Starting {config.app_name} v{config.version} ({config.environment})")

    try:
        database.connect()
    except DatabaseConnectionError as e:
        # Fatal: no retry, the server refuses to start
        logger.error(f"✗ {e}")
        raise
    logger.info("✓ Database connected successfully")

    yield  # Application runs here

    logger.info("Gracefully shutting down...")
    database.dispose()


# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================
def _error_response(
    request: Request,
    status_code: int,
    message: str,
    errors: Optional[List[ErrorInfo]] = None,
    exc: Optional[BaseException] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    metadata = {}
    if exc is not None and request.app.state.config.is_development:
        metadata["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    body = ApiResponse.fail(message, errors=errors, metadata=metadata).to_dict()
    return JSONResponse(status_code=status_code, content=body, headers=headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors with a per-field breakdown."""
    errors = []
    for error in exc.errors():
        # Clean up field name (loc is usually ('body', 'field_name'))
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append(ErrorInfo(field=".".join(loc) or None, msg=error["msg"]))

    logger.warning(f"Validation Error: {[e.model_dump(exclude_none=True) for e in errors]}")
    return _error_response(request, status.HTTP_400_BAD_REQUEST, "Validation failed", errors=errors)


async def app_exception_handler(request: Request, exc: AppException):
    """Handle domain-specific application exceptions."""
    logger.warning(f"AppException: {exc.message}", extra={"code": exc.error_code, "path": request.url.path})
    return _error_response(
        request,
        exc.status_code,
        exc.message,
        errors=[ErrorInfo(msg=exc.message, code=exc.error_code)],
    )


async def not_found_handler(request: Request, exc: StarletteHTTPException):
    """Uniform 404 for any path no route group claims."""
    body = ApiResponse.fail(f"Not Found - {request.url.path}").model_dump(include={"success", "message"})
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=body)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle standard HTTP exceptions raised by the framework."""
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return await not_found_handler(request, exc)
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return _error_response(request, exc.status_code, message, headers=getattr(exc, "headers", None))


async def general_exception_handler(request: Request, exc: Exception):
    """Terminal handler for unhandled server errors."""
    logger.exception("Unhandled server error", extra={"path": request.url.path})
    return _error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", exc=exc)


# ============================================================================
# APPLICATION FACTORY
# ============================================================================
def create_app(config: Optional[Config] = None) -> FastAPI:
    config = config or settings
    setup_logging(config.environment, config.app_name)

    app = FastAPI(
        title=config.app_name,
        version=config.version,
        description="HR management: employees, departments, attendance, leave, payroll and performance",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Process-wide state, owned by the app instance
    app.state.config = config
    app.state.database = Database(config.database_url)
    app.state.limiter = build_limiter()
    app.state.dashboard = DashboardContext()

    # ========================================================================
    # MIDDLEWARE STACK
    # Add in REVERSE order (last added runs first)
    # ========================================================================

    # 7. Unexpected errors become 500s inside the pipeline
    app.add_middleware(UnhandledErrorMiddleware, handler=general_exception_handler)

    # 6. Request logging (development only)
    if config.is_development:
        app.add_middleware(LoggingMiddleware, request_id_header=config.request_id_header)

    # 5. Body parsing limits (JSON and URL-encoded)
    app.add_middleware(BodySizeLimitMiddleware, max_bytes=config.max_body_bytes)

    # 4. CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.client_url],
        allow_credentials=True,
        allow_methods=config.cors_methods,
        allow_headers=config.cors_headers,
    )

    # 3. Rate limiting, scoped to the API prefix
    app.add_middleware(
        RateLimitingMiddleware,
        limiter=app.state.limiter,
        prefix=config.api_prefix,
        limit=config.rate_limit,
        message=config.rate_limit_message,
    )

    # 2. Response compression
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    # 1. Security headers (outermost)
    app.add_middleware(SecureHeadersMiddleware)

    # ========================================================================
    # EXCEPTION HANDLERS
    # ========================================================================
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    # Fallback for errors raised by the middleware layers themselves
    app.add_exception_handler(Exception, general_exception_handler)

    # ========================================================================
    # ROUTER INCLUSION
    # ========================================================================
    app.include_router(api_router, prefix=config.api_prefix)

    # ========================================================================
    # OPERATIONAL ENDPOINTS (at root level)
    # ========================================================================
    @app.get("/", tags=["Health"])
    def root():
        """API root endpoint."""
        return {
            "message": f"{config.app_name}",
            "version": config.version,
            "docs": "/docs",
        }

    @app.get("/health", tags=["Health"])
    def health_check(request: Request):
        """Liveness probe for load balancers and orchestrators."""
        return {
            "status": "up",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": config.version,
            "environment": config.environment,
            "database": "connected" if request.app.state.database.is_connected else "disconnected",
        }

    return app


app = create_app()
