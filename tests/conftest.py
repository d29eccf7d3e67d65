"""Shared pytest fixtures: settings, fake Stripe gateway, in-memory database."""

import asyncio
import os

# Module-level app creation in menubill.app reads settings at import time
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_secret")
os.environ.setdefault("BILLING_QUEUE", "inline")

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from factories import WEBHOOK_SECRET, FakeGateway
from menubill.config import Settings
from menubill.models import Base


@pytest.fixture
def settings() -> Settings:
    return Settings(debug=True, stripe_webhook_secret=WEBHOOK_SECRET, billing_queue="inline")


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def run_db():
    """Run ``fn(session_factory)`` against a fresh in-memory SQLite database."""

    def _run(fn):
        async def _main():
            engine = create_async_engine(
                "sqlite+aiosqlite://",
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
            try:
                return await fn(factory)
            finally:
                await engine.dispose()

        return asyncio.run(_main())

    return _run
