"""
Workstation API main application.
Entry point for the FastAPI server.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from shared.config.logging import setup_logging, api_logger as logger
from shared.config.settings import settings
from shared.infrastructure.store import SessionStore, build_session_store
from shared.security.rate_limit import limiter, rate_limit_exceeded_handler
from shared.utils.exceptions import AppException
from workstation_api.routers.auth import router as auth_router
from workstation_api.routers.cash import router as cash_router
from workstation_api.routers.changes import router as changes_router
from workstation_api.routers.kitchen import router as kitchen_router
from workstation_api.routers.orders import router as orders_router
from workstation_api.routers.receipts import router as receipts_router
from workstation_api.routers.waitlist import router as waitlist_router
from workstation_api.routers.workstation import router as workstation_router
from workstation_api.services.domain import load_seed

DEFAULT_ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]


def _allowed_origins() -> list[str]:
    if settings.allowed_origins:
        return [origin.strip() for origin in settings.allowed_origins.split(",") if origin.strip()]
    return DEFAULT_ALLOWED_ORIGINS


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers)


def create_app(store: SessionStore | None = None, roster_seed: list[dict] | None = None) -> FastAPI:
    """
    Build the application.

    ``store`` and ``roster_seed`` are injected by tests; when omitted the
    store is built from settings at startup and the seed is read from
    ``settings.roster_seed_path`` (or the demo roster).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging()

        config_errors = settings.validate_production_settings()
        if config_errors:
            for error in config_errors:
                logger.error("Configuration error", error=error)
            if settings.environment == "production":
                raise RuntimeError(
                    f"Production configuration errors: {'; '.join(config_errors)}. "
                    "Server will not start with this configuration."
                )

        owns_store = store is None
        app.state.store = store if store is not None else build_session_store(settings)
        app.state.roster_seed = roster_seed if roster_seed is not None else load_seed(settings.roster_seed_path)
        logger.info("Starting workstation API", port=settings.api_port, env=settings.environment)

        yield

        logger.info("Shutting down workstation API")
        if owns_store:
            app.state.store.close()

    app = FastAPI(
        title="Restaurant Workstation API",
        description="Employee login, workstation dispatch, cash register and waitlist",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(AppException, app_exception_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth_router)
    app.include_router(workstation_router)
    app.include_router(cash_router)
    app.include_router(orders_router)
    app.include_router(kitchen_router)
    app.include_router(receipts_router)
    app.include_router(waitlist_router)
    app.include_router(changes_router)

    @app.get("/api/health")
    def health_check():
        """Basic health check endpoint."""
        return {
            "status": "healthy",
            "service": "workstation-api",
            "environment": settings.environment,
            "store_backend": settings.store_backend,
            "change_bus": settings.change_bus_backend,
        }

    return app


app = create_app()
