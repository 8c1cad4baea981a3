import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api import api_router
from app.config import Settings, settings
from app.core.dependencies import build_services
from app.core.errors import AuthError
from app.database import build_engine, build_session_factory
from app.logging_config import setup_logging

logger = logging.getLogger(__name__)

PROBLEM_JSON = "application/problem+json"
REQUEST_ID_HEADER = "X-Request-ID"


def create_app(app_settings: Settings = settings) -> FastAPI:
    # Configure logging first
    setup_logging(app_env=app_settings.app_env, log_level=app_settings.log_level)

    # Initialize Sentry if DSN is configured
    if app_settings.sentry_dsn:
        try:
            import sentry_sdk
            from sentry_sdk.integrations.fastapi import FastApiIntegration

            sentry_sdk.init(
                dsn=app_settings.sentry_dsn,
                environment=app_settings.app_env,
                integrations=[FastApiIntegration()],
                traces_sample_rate=0.1 if app_settings.is_production else 1.0,
                send_default_pii=False,
            )
            logger.info("Sentry initialized")
        except ImportError:
            logger.warning("sentry-sdk not installed, skipping Sentry initialization")

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        engine = build_engine(app_settings.database_url, echo=app_settings.app_env == "development")
        app.state.session_factory = build_session_factory(engine)
        app.state.services = build_services(app_settings)
        logger.info(f"{app_settings.app_name} started (env={app_settings.app_env})")
        try:
            yield
        finally:
            await engine.dispose()
            logger.info("Database engine disposed")

    app = FastAPI(
        title=app_settings.app_name,
        version="0.1.0",
        docs_url=None if app_settings.is_production else "/docs",
        redoc_url=None if app_settings.is_production else "/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    app.include_router(api_router)

    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError):
        logger.info(
            f"{request.method} {request.url.path} rejected: {exc.kind.value}",
            extra={
                "error_kind": exc.kind.value,
                "request_id": getattr(request.state, "request_id", None),
            },
        )
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_problem(instance=request.url.path),
            media_type=PROBLEM_JSON,
            headers=headers,
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled exception on {request.method} {request.url.path}: {exc}",
            exc_info=True,
            extra={"request_id": getattr(request.state, "request_id", None)},
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content={"detail": jsonable_encoder(exc.errors())},
        )

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "app": app_settings.app_name, "version": "0.1.0"}

    return app


app = create_app()
