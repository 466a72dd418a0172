# legal_ml/core/database.py
import logging
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine,
)
from sqlalchemy.pool import NullPool

from legal_ml.core.config import Settings, get_settings
from legal_ml.core.exceptions import ConfigurationException, PersistenceException
from legal_ml.models.database import Base

logger = logging.getLogger(__name__)


def create_engine_from_settings(settings: Optional[Settings] = None) -> AsyncEngine:
    """Create the async engine for the configured database"""
    settings = settings or get_settings()
    if not settings.database_url:
        raise ConfigurationException("database_url", "no database URL configured")

    if settings.is_sqlite:
        # SQLite does not pool connections across tasks
        return create_async_engine(
            settings.database_url,
            echo=settings.debug,
            poolclass=NullPool,
        )

    return create_async_engine(
        settings.database_url,
        echo=settings.debug,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_pre_ping=True,
        pool_recycle=3600,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_db(engine: AsyncEngine):
    """Create the tables owned by the scoring engine"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Scoring engine tables ready")


class SQLGateway:
    """
    Persistence gateway: executes one parameterized statement per call.

    Statements use named parameters (``:user_id``). Every call runs in its
    own session and commits on success, so no transaction spans two calls.
    """

    def __init__(self, session_factory: async_sessionmaker,
                 engine: Optional[AsyncEngine] = None):
        self._session_factory = session_factory
        self._engine = engine

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "SQLGateway":
        engine = create_engine_from_settings(settings)
        return cls(create_session_factory(engine), engine=engine)

    async def query(self, statement: str,
                    params: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        async with self._session_factory() as session:
            try:
                result = await session.execute(text(statement), dict(params or {}))
                rows = [dict(row) for row in result.mappings()] if result.returns_rows else []
                await session.commit()
                return rows
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Statement execution failed: {e}")
                raise PersistenceException(statement, str(e)) from e

    async def health_check(self) -> bool:
        """Test if database connection is working"""
        try:
            rows = await self.query("SELECT 1 AS test")
            return bool(rows) and rows[0]["test"] == 1
        except PersistenceException:
            return False

    async def close(self):
        if self._engine is not None:
            await self._engine.dispose()
            logger.info("Database connection closed")
