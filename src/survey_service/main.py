"""
FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Awaitable, Callable
from uuid import uuid4

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from survey_service.alerts.router import admin_router as alert_contacts_router
from survey_service.alerts.router import router as survey_alerts_router
from survey_service.alerts.service import AlertService
from survey_service.analytics.router import router as analytics_router
from survey_service.analytics.service import AnalyticsService
from survey_service.calendar.client import CalendarClient
from survey_service.config import get_settings
from survey_service.configs.cache import ConfigCache
from survey_service.configs.listener import PostgresConfigListener
from survey_service.configs.notifier import ConfigChangeNotifier
from survey_service.configs.router import router as configs_router
from survey_service.configs.service import ConfigService
from survey_service.notifications.client import NotificationsClient
from survey_service.shared.database import DatabaseManager
from survey_service.shared.exceptions import AppException
from survey_service.shared.logging import correlation_id_var, get_logger, setup_logging
from survey_service.shared.unit_of_work import TransactionManager
from survey_service.surveys.authorization import AuthorizationResolver
from survey_service.surveys.responses import SurveyResponseService
from survey_service.surveys.responses_router import router as survey_responses_router
from survey_service.surveys.router import admin_router as admin_surveys_router
from survey_service.surveys.router import router as surveys_router
from survey_service.surveys.service import SurveyService

# Register every model on Base.metadata before create_all
import survey_service.alerts.models  # noqa: F401
import survey_service.configs.models  # noqa: F401
import survey_service.surveys.models  # noqa: F401

logger = get_logger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Startup fails when the first config cache load fails. Whatever started
    before a startup failure is stopped again.
    """
    setup_logging()
    settings = get_settings()

    logger.info("Application starting", extra={"env": settings.app_env, "version": settings.version})

    database = DatabaseManager(settings=settings)
    transactions = TransactionManager(
        database.session_factory,
        config_channel=settings.config_listener_channel if settings.is_postgres else None,
    )
    cache = ConfigCache(transactions)
    notifier = ConfigChangeNotifier(cache.on_upstream_change)
    listener: PostgresConfigListener | None = None
    calendar = CalendarClient.from_settings(settings)
    notifications = NotificationsClient.from_settings(settings)

    try:
        if settings.app_env == "dev":
            await database.create_all()
        await cache.refresh_all()

        notifier.start()
        if settings.config_listener_enabled and settings.is_postgres:
            listener = PostgresConfigListener(database.database_url, settings.config_listener_channel, notifier)
            await listener.start()

        resolver = AuthorizationResolver(calendar, cache)
        app.state.config_cache = cache
        app.state.survey_service = SurveyService(transactions, resolver, settings)
        app.state.response_service = SurveyResponseService(transactions, resolver)
        app.state.config_service = ConfigService(transactions, cache, notifier)
        app.state.alert_service = AlertService(transactions, notifications)
        app.state.analytics_service = AnalyticsService(transactions, cache)

        yield
    finally:
        logger.info("Shutting down application")
        await notifications.close()
        await calendar.close()
        if listener is not None:
            await listener.stop()
        await notifier.stop()
        await database.close()
        logger.info("Application shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Survey Service API",
        description="Multi-tenant survey management with event-based authorization",
        version=settings.version,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "Request failed",
                extra={"path": request.url.path, "code": exc.code, "error": exc.message},
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": {"code": exc.code, "message": exc.message, "details": exc.details}},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = []
        for error in exc.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            errors.append({"field": field, "message": error["msg"], "type": error["type"]})
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "detail": {
                    "code": "VALIDATION_ERROR",
                    "message": "Request validation failed",
                    "details": {"errors": errors},
                }
            },
        )

    @app.middleware("http")
    async def correlation_id_middleware(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        correlation_id = request.headers.get(CORRELATION_ID_HEADER) or str(uuid4())
        token = correlation_id_var.set(correlation_id)
        try:
            response = await call_next(request)
        finally:
            correlation_id_var.reset(token)
        response.headers[CORRELATION_ID_HEADER] = correlation_id
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(surveys_router)
    app.include_router(admin_surveys_router)
    app.include_router(survey_responses_router)
    app.include_router(survey_alerts_router)
    app.include_router(alert_contacts_router)
    app.include_router(configs_router)
    app.include_router(analytics_router)

    @app.get("/version")
    async def version() -> dict[str, str]:
        return {"version": settings.version}

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    return app


app = create_app()
