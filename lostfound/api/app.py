"""FastAPI application factory.

Service errors are translated to HTTP responses here so the routers can call
the services directly:

    NotFoundError -> 404, ValidationError -> 400,
    AuthorizationError -> 403, ConflictError -> 409
"""

import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from lostfound.config.models import ApiConfig
from lostfound.logging import get_logger, log_context
from lostfound.persistence import PersistenceError, get_engine
from lostfound.services import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ServiceError,
    ValidationError,
)

from .dependencies import ServiceContainer
from .routers import alerts, confirmations, listings, moderation, threads, users

logger = get_logger(__name__, component="api")

ERROR_STATUS_CODES = (
    (NotFoundError, 404),
    (ValidationError, 400),
    (AuthorizationError, 403),
    (ConflictError, 409),
)


def status_code_for(error: ServiceError) -> int:
    for error_cls, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_cls):
            return status_code
    return 400


def create_app(services: ServiceContainer, jwt_secret: str, api_config: ApiConfig = None) -> FastAPI:
    """Build the HTTP application around already-initialised services."""
    api_config = api_config or ApiConfig()

    app = FastAPI(title="Lost & Found Backend")
    app.state.services = services
    app.state.jwt_secret = jwt_secret

    app.add_middleware(
        CORSMiddleware,
        allow_origins=api_config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
        with log_context(request_id=request_id):
            response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(ServiceError)
    async def handle_service_error(request: Request, exc: ServiceError):
        status_code = status_code_for(exc)
        logger.info(
            f"{request.method} {request.url.path} rejected: {exc.message}",
            extra={"event": "api.request.rejected", "status_code": status_code},
        )
        return JSONResponse(status_code=status_code, content={"detail": exc.message})

    @app.exception_handler(PersistenceError)
    async def handle_persistence_error(request: Request, exc: PersistenceError):
        logger.error(
            f"{request.method} {request.url.path} failed: {exc}",
            extra={"event": "api.request.failed"},
        )
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    app.include_router(users.router, prefix="/users", tags=["Users"])
    app.include_router(listings.router, prefix="/listings", tags=["Listings"])
    app.include_router(alerts.router, prefix="/alerts", tags=["Alerts"])
    app.include_router(threads.router, prefix="/threads", tags=["Threads"])
    app.include_router(confirmations.router, prefix="/confirmations", tags=["Confirmations"])
    app.include_router(moderation.router, prefix="/moderation", tags=["Moderation"])

    @app.get("/health", tags=["ops"])
    def health():
        status = {"ok": True, "db": False}
        try:
            with get_engine().connect() as conn:
                conn.execute(text("SELECT 1"))
            status["db"] = True
        except Exception as e:
            status["ok"] = False
            logger.warning(f"Health check failed: {e}", extra={"event": "api.health.failed"})
        return JSONResponse(status, status_code=200 if status["ok"] else 503)

    return app
