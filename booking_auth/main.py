"""Main FastAPI application entry point."""

import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from booking_auth.api.v1.endpoints.auth.routes import router as auth_router
from booking_auth.api.v1.endpoints.health.routes import router as health_router
from booking_auth.api.v1.endpoints.permissions.routes import router as permissions_router
from booking_auth.api.v1.endpoints.roles.routes import router as roles_router
from booking_auth.api.v1.endpoints.users.routes import router as users_router
from booking_auth.core.domain.enums import ErrorCode
from booking_auth.core.exceptions import DomainException
from booking_auth.infrastructure.database.init_db import create_tables, seed_default_rbac
from booking_auth.infrastructure.database.session import close_db_connections
from booking_auth.settings import Settings, get_settings
from booking_auth.utils.logging import setup_logging

logger = logging.getLogger(__name__)

STATUS_BY_CODE: Dict[ErrorCode, int] = {
    ErrorCode.TOKEN_MISSING: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.TOKEN_INVALID: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.TOKEN_EXPIRED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.TOKEN_BLACKLISTED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.ACCOUNT_LOCKED: status.HTTP_423_LOCKED,
    ErrorCode.USER_INACTIVE: status.HTTP_403_FORBIDDEN,
    ErrorCode.REFRESH_TOKEN_INVALID: status.HTTP_400_BAD_REQUEST,
    ErrorCode.REFRESH_TOKEN_EXPIRED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.REFRESH_TOKEN_REVOKED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorCode.CSRF_MISSING: status.HTTP_403_FORBIDDEN,
    ErrorCode.CSRF_INVALID: status.HTTP_403_FORBIDDEN,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.EMAIL_DUPLICATED: status.HTTP_409_CONFLICT,
    ErrorCode.USERNAME_DUPLICATED: status.HTTP_409_CONFLICT,
    ErrorCode.VALIDATION_ERROR: 422,
    ErrorCode.CONFIGURATION_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

BEARER_CHALLENGE_CODES = frozenset({
    ErrorCode.TOKEN_MISSING,
    ErrorCode.TOKEN_INVALID,
    ErrorCode.TOKEN_EXPIRED,
    ErrorCode.TOKEN_BLACKLISTED,
})


def error_body(message: str, code: str) -> dict:
    return {"success": False, "error": message, "code": code}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup and shutdown events."""
    settings = get_settings()
    setup_logging(settings)
    logger.info(f"Starting {settings.api_title} ({settings.environment})...")

    try:
        settings.validate_production()

        insecure = settings.insecure_settings()
        if insecure:
            logger.warning(f"Running with insecure default values for: {', '.join(insecure)}")

        if settings.auto_create_tables:
            await create_tables()
            logger.info("Database tables created")
            if Path(settings.rbac_config_path).is_file():
                await seed_default_rbac()
            else:
                logger.warning(f"RBAC config {settings.rbac_config_path} not found, skipping seed")

        logger.info(f"{settings.api_title} started successfully")

    except Exception:
        logger.exception("Startup failed")
        raise

    yield

    logger.info(f"Shutting down {settings.api_title}...")
    await close_db_connections()


def create_app(settings: Optional[Settings] = None, use_lifespan: bool = True) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        settings: Settings used for app metadata and CORS
        use_lifespan: Run startup table creation and seeding
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.api_title,
        description=settings.api_description,
        version=settings.api_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan if use_lifespan else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router, prefix=settings.api_v1_prefix)
    app.include_router(auth_router, prefix=settings.api_v1_prefix)
    app.include_router(roles_router, prefix=settings.api_v1_prefix)
    app.include_router(permissions_router, prefix=settings.api_v1_prefix)
    app.include_router(users_router, prefix=settings.api_v1_prefix)

    register_exception_handlers(app)

    register_middleware(app)

    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint."""
        return {
            "message": settings.api_title,
            "version": settings.api_version,
            "docs": "/docs",
        }

    return app


def register_exception_handlers(app: FastAPI) -> None:
    """Register handlers rendering every failure in the error envelope."""

    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException):
        """Map the exception's code to its HTTP status."""
        status_code = STATUS_BY_CODE.get(exc.code, status.HTTP_400_BAD_REQUEST)
        headers = {"WWW-Authenticate": "Bearer"} if exc.code in BEARER_CHALLENGE_CODES else None

        if status_code >= 500:
            logger.error(f"{exc.code.value}: {exc.message}")

        return JSONResponse(
            status_code=status_code,
            content=error_body(exc.message, exc.code.value),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle request validation errors."""
        body = error_body("Validation failed", ErrorCode.VALIDATION_ERROR.value)
        body["errors"] = jsonable_encoder(
            [{"loc": error["loc"], "msg": error["msg"], "type": error["type"]} for error in exc.errors()]
        )
        return JSONResponse(status_code=422, content=body)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle routing and framework HTTP errors."""
        code = ErrorCode.NOT_FOUND if exc.status_code == 404 else ErrorCode.HTTP_ERROR
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(str(exc.detail), code.value),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle general exceptions."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body("Internal server error", ErrorCode.INTERNAL_ERROR.value),
        )


def register_middleware(app: FastAPI) -> None:
    """Register custom middleware."""

    @app.middleware("http")
    async def logging_middleware(request: Request, call_next):
        """Log all HTTP requests."""
        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"

        response = await call_next(request)

        process_time = time.perf_counter() - start_time
        logger.info(
            f"{request.method} {request.url.path} from {client_ip} "
            f"status={response.status_code} time={process_time:.3f}s"
        )

        return response

    @app.middleware("http")
    async def security_headers_middleware(request: Request, call_next):
        """Add security headers to responses."""
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Cache-Control"] = "no-store"

        return response


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "booking_auth.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
