import logging
import time
from contextlib import asynccontextmanager

import redis
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from campusconnect.core.config import Settings, get_settings
from campusconnect.core.errors import AppError
from campusconnect.core.log_config import configure_logging
from campusconnect.database.db import Base, build_engine, build_redis_client, build_session_factory
from campusconnect.models import events as event_models  # noqa: F401
from campusconnect.models import registrations as registration_models  # noqa: F401
from campusconnect.models import users as user_models  # noqa: F401
from campusconnect.routes import admin, auth, profile
from campusconnect.routes import events as event_routes
from campusconnect.routes import registrations as registration_routes

logger = logging.getLogger(__name__)


def error_body(message: str, details=None) -> dict:
    body = {"error": message}
    if details is not None:
        body["details"] = details
    return body


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.details))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        details = [
            {
                "field": ".".join(str(part) for part in err["loc"] if part != "body"),
                "message": err["msg"],
            }
            for err in exc.errors()
        ]
        return JSONResponse(status_code=400, content=error_body("Validation failed", details))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        message = "Route not found" if exc.status_code == 404 else str(exc.detail)
        return JSONResponse(status_code=exc.status_code, content=error_body(message), headers=exc.headers)

    @app.exception_handler(OperationalError)
    async def storage_error_handler(request: Request, exc: OperationalError):
        logger.error("Storage error on %s %s: %s", request.method, request.url.path, exc.orig)
        return JSONResponse(status_code=503, content=error_body("Storage temporarily unavailable"))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content=error_body("Internal server error"))


def create_app(settings: Settings | None = None, *, redis_client: redis.Redis | None = None) -> FastAPI:
    """
    Build the API with its own storage and lock handles.

    Run with ``uvicorn campusconnect.main:create_app --factory``.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    engine = build_engine(settings)
    # Create all tables (in production, use migrations such as Alembic)
    Base.metadata.create_all(bind=engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        app.state.redis.close()
        engine.dispose()
        logger.info("Storage handles released")

    app = FastAPI(title="CampusConnect API", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.redis = redis_client if redis_client is not None else build_redis_client(settings)

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info("%s %s -> %s (%.1f ms)", request.method, request.url.path, response.status_code, elapsed_ms)
        return response

    register_exception_handlers(app)

    @app.get("/health", tags=["health"])
    def health():
        return {"status": "ok", "message": "CampusConnect API is running"}

    # Include the routers
    app.include_router(auth.router)
    app.include_router(profile.router)
    app.include_router(event_routes.router)
    app.include_router(registration_routes.router)
    app.include_router(admin.router)

    return app
