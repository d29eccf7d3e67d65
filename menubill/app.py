"""FastAPI application factory — entry point for the billing webhook service."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from menubill.config import Settings, get_settings
from menubill.constants import WEBHOOK_ALLOWED_METHODS
from menubill.routers import webhooks
from menubill.services.billing_queue import ArqBillingQueue, BillingQueue, InlineBillingQueue
from menubill.services.stripe_gateway import StripeGateway, init_stripe
from menubill.utils import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    settings: Settings = app.state.settings
    engine = None

    if app.state.session_factory is None:
        from menubill.db.session import async_session_factory, engine
        from menubill.models import Base

        # Auto-create tables for SQLite (dev mode); PostgreSQL uses Alembic
        if settings.database_url.startswith("sqlite"):
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        app.state.session_factory = async_session_factory

    # Initialize third-party API keys once at startup
    if settings.stripe_secret_key:
        init_stripe(settings)

    arq_pool = None
    if app.state.billing_queue is None:
        if settings.billing_queue == "arq":
            from arq import create_pool
            from arq.connections import RedisSettings

            arq_pool = await create_pool(RedisSettings.from_dsn(settings.redis_url))
            app.state.billing_queue = ArqBillingQueue(arq_pool)
        else:
            app.state.billing_queue = InlineBillingQueue(
                app.state.session_factory, app.state.gateway, settings
            )
        logger.info(f"Billing queue: {settings.billing_queue}")

    yield

    if arq_pool is not None:
        await arq_pool.aclose()
    if engine is not None:
        await engine.dispose()


def create_app(
    settings: Settings | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    gateway: StripeGateway | None = None,
    billing_queue: BillingQueue | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.debug)

    app = FastAPI(
        title=settings.app_name,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url=None,
    )

    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.gateway = gateway or StripeGateway()
    app.state.billing_queue = billing_queue

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=WEBHOOK_ALLOWED_METHODS,
        allow_headers=["*"],
    )

    # --- Health ---
    @app.get("/health", include_in_schema=False)
    async def health(request: Request):
        try:
            async with request.app.state.session_factory() as db:
                await db.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return JSONResponse({"status": "unavailable"}, status_code=503)
        return {"status": "ok"}

    # --- Routers ---
    app.include_router(webhooks.router)

    return app


app = create_app()
