"""Async engine, session factory and schema bootstrap."""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool
from sqlalchemy.schema import CreateSchema

from concierge.config.settings import settings
from concierge.models import Base

logger = logging.getLogger(__name__)


def _configured_schema() -> str | None:
    schema = (settings.database.schema_name or "").strip()
    return schema or None


def build_engine(*, schema: str | None = None) -> AsyncEngine:
    """Create the async engine; tables without an explicit schema land in ``schema``.

    Serverless databases (and debug runs) get a ``NullPool`` so idle
    connections do not keep the instance awake.
    """

    options: dict[str, Any] = {"echo": settings.debug, "pool_pre_ping": True}
    if settings.database.serverless or settings.debug:
        options["poolclass"] = NullPool

    created = create_async_engine(settings.database.url, **options)
    if schema:
        created = created.execution_options(schema_translate_map={None: schema})
    return created


SCHEMA = _configured_schema()
engine: AsyncEngine = build_engine(schema=SCHEMA)
SessionFactory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def get_session() -> AsyncIterator[AsyncSession]:
    """Request-scoped session for FastAPI dependencies."""

    async with SessionFactory() as session:
        yield session


async def init_models() -> None:
    async with engine.begin() as conn:
        if SCHEMA:
            await conn.execute(CreateSchema(SCHEMA, if_not_exists=True))
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database tables ready (schema=%s)", SCHEMA or "default")


async def dispose_engine() -> None:
    await engine.dispose()
