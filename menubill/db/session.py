"""Async database engine and session factory.

Supports both PostgreSQL (production) and SQLite (local dev).
"""

from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from menubill.config import get_settings


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine, swapping SQLite URLs to the aiosqlite driver."""
    if database_url.startswith("sqlite"):
        database_url = database_url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
        # Ensure parent dir exists for the .db file
        db_path = database_url.split("///")[-1]
        if db_path:
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        return create_async_engine(database_url, echo=echo, connect_args={"check_same_thread": False})
    return create_async_engine(database_url, echo=echo, pool_pre_ping=True)


settings = get_settings()

engine = build_engine(settings.database_url, echo=settings.debug)

async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

