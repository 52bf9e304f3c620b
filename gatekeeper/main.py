"""
FastAPI application factory.

Assembles the app, registers all routers and error handlers, and wires
up lifecycle events.  Database schema is managed by Alembic — NOT
create_all.
"""

import logging

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from gatekeeper.controllers.access_controller import router as access_router
from gatekeeper.controllers.auth_controller import router as auth_router
from gatekeeper.core.clock import utcnow
from gatekeeper.core.config import Settings, settings
from gatekeeper.core.database import engine
from gatekeeper.dependencies import get_settings
from gatekeeper.schemas import HealthOut
from gatekeeper.models import Base  # noqa: F401 — ensures all models are registered

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Portal front-end may be served from another origin.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    # ── Register routers ─────────────────────────────────────────────
    app.include_router(access_router)
    app.include_router(auth_router)

    # ── Error handlers ───────────────────────────────────────────────
    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            return JSONResponse(status_code=404, content={"error": "Rota não encontrada"})
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": "Erro interno no servidor", "details": str(exc)},
        )

    # ── Startup / Shutdown ───────────────────────────────────────────
    @app.on_event("startup")
    async def on_startup() -> None:
        """Log the effective access policy.

        NOTE: Database schema is managed by Alembic migrations.
        Run `alembic upgrade head` before starting the app.
        """
        logger.info("%s listening on port %s", settings.APP_NAME, settings.PORT)
        logger.info("Store configured: %s", settings.store_configured)
        logger.info("Allowed IPs: %s", ", ".join(sorted(settings.allowed_ips)) or "<none>")
        logger.info("Device policy: %s", settings.DEVICE_POLICY.value)
        logger.info(
            "Business hours: Mon-Fri %02dh-%02dh %s (non-admin only)",
            settings.BUSINESS_HOURS_START,
            settings.BUSINESS_HOURS_END,
            settings.ACCESS_WINDOW_TIMEZONE,
        )

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        await engine.dispose()
        logger.info("Database engine disposed.")

    # ── Health check ─────────────────────────────────────────────────
    @app.get("/health", tags=["Health"], response_model=HealthOut)
    async def health(config: Settings = Depends(get_settings)):
        return HealthOut(
            timestamp=utcnow(),
            store="configured" if config.store_configured else "not configured",
        )

    return app


app = create_app()
