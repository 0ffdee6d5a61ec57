"""Comment Moderation API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import timedelta
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from comment_moderation.comments.locale import LocaleResolver
from comment_moderation.comments.moderation import (
    ModerationConfig,
    ModerationLinkBuilder,
    ModerationWorkflow,
)
from comment_moderation.comments.router import router as comments_router
from comment_moderation.comments.store import CommentStore
from comment_moderation.comments.tokens import ModerationTokenCodec
from comment_moderation.config import get_settings
from comment_moderation.core.context import get_request_id
from comment_moderation.core.database import init_async_cassandra, shutdown_async_cassandra
from comment_moderation.core.logging import configure_structlog, get_logger
from comment_moderation.core.middleware import RequestContextMiddleware
from comment_moderation.email.service import EmailService
from comment_moderation.health import router as health_router


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    app.state.locale_resolver = LocaleResolver(
        settings.comment_locale_map, settings.comment_default_locale
    )

    # Email service is optional; without it moderation emails are skipped
    email_service = None
    if settings.email_configured:
        email_service = EmailService(
            credentials_path=settings.email_credentials_path,
            sender_address=settings.email_sender_address,
            sender_name=settings.email_sender_name,
        )
        app.state.email_service = email_service
        logger.info("email_service_initialized", sender=settings.email_sender_address)

    try:
        session = await init_async_cassandra()
        logger.info("cassandra_initialized")

        app.state.comment_store = CommentStore(
            session=session,
            keyspace=settings.cassandra_keyspace,
        )
        app.state.moderation_workflow = ModerationWorkflow(
            store=app.state.comment_store,
            codec=ModerationTokenCodec(
                settings.moderation_token_secret,
                algorithm=settings.auth_algorithm,
                ttl=timedelta(hours=settings.comment_moderation_token_ttl_hours),
            ),
            links=ModerationLinkBuilder(settings.public_base_url, app.url_path_for),
            config=ModerationConfig.from_settings(settings),
            email_service=email_service,
        )
        logger.info(
            "moderation_workflow_initialized",
            anonymous_access=settings.comment_anonymous_access_enabled,
            moderation=settings.comment_moderation_enabled,
        )
    except ConnectionError as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # Stack traces are never rendered; the handlers below log them instead
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Moderated comments - API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )

        content = {
            "error": True,
            "message": str(exc.detail)
            if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
            else "Internal server error",
            "status_code": exc.status_code,
            "request_id": request_id,
        }
        # Form errors travel as {"errors": {field: message}}
        if isinstance(exc.detail, dict) and "errors" in exc.detail:
            content["message"] = "Validation error"
            content["errors"] = exc.detail["errors"]

        return ORJSONResponse(
            status_code=exc.status_code, content=content, headers=exc.headers
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle request validation errors."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "message": "Validation error",
                "status_code": 422,
                "request_id": request_id,
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Invalid value"),
                    }
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler for unhandled exceptions.

        Details are logged, never returned.
        """
        request_id = _get_request_id_safe(request)

        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": True,
                "message": "An unexpected error occurred. Please try again later.",
                "status_code": 500,
                "request_id": request_id,
            },
        )

    app.include_router(health_router)
    app.include_router(comments_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "Comment Moderation API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
