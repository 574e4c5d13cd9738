"""
Competitor Analysis FastAPI application entry point.

Flow: /new → research task run → signed webhook → report (+ competitor fan-out)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from starlette.exceptions import HTTPException as StarletteHTTPException

from app import __version__
from app.config import get_settings
from app.db.session import check_db_connection, engine, init_db

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    logger.info("Competitor Analysis starting")
    try:
        try:
            check_db_connection()
            init_db()
            logger.info("Database connection verified")
        except Exception as e:
            logger.critical("Database unreachable: %s", e)
            raise

        settings = get_settings()
        if not settings.parallel_api_key:
            logger.warning("PARALLEL_API_KEY is not set; new analyses cannot be submitted")
        if not settings.parallel_webhook_secret:
            logger.warning("PARALLEL_WEBHOOK_SECRET is not set; every webhook will be rejected")

        yield
    finally:
        logger.info("Competitor Analysis shutting down")
        engine.dispose()
        logger.info("Database connection pool closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    from app.api.auth import router as auth_router
    from app.api.mcp import router as mcp_router
    from app.api.views import not_found_page
    from app.api.views import router as views_router
    from app.api.webhook import router as webhook_router

    # HTML-serving view routes (no prefix: /, /new, /analysis/...)
    app.include_router(views_router, tags=["views"])
    app.include_router(auth_router, tags=["auth"])

    # Machine endpoints: research service callbacks and the agent tool
    app.include_router(webhook_router, tags=["webhook"])
    app.include_router(mcp_router, tags=["mcp"])

    @app.exception_handler(StarletteHTTPException)
    async def html_not_found(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return not_found_page(request)
        return await http_exception_handler(request, exc)

    @app.get("/health")
    def health() -> dict:
        """Health check endpoint. Confirms DB connectivity."""
        from sqlalchemy import text

        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return {
                "status": "ok",
                "version": __version__,
                "database": "connected",
            }
        except Exception:
            from fastapi.responses import JSONResponse

            return JSONResponse(
                status_code=503,
                content={
                    "status": "unhealthy",
                    "version": __version__,
                    "database": "disconnected",
                },
            )

    return app


app = create_app()
