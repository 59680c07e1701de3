"""Database configuration and session management"""
import logging
import time

from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy import text

from transit_points.config import Settings, get_settings

logger = logging.getLogger(__name__)

# Global state, populated by init_engine()
_engine = None
_async_session = None

# Base class for models
Base = declarative_base()


def _engine_options(settings: Settings) -> dict:
    """Pool options for server databases; SQLite picks its own pool"""
    if settings.is_sqlite:
        return {"echo": settings.debug}
    options = {
        "echo": settings.debug,
        "pool_pre_ping": True,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_recycle": settings.db_pool_recycle,
        "pool_timeout": 30,
    }
    if settings.database_url.startswith("postgresql+asyncpg"):
        options["connect_args"] = {
            "server_settings": {"timezone": "UTC"},
            "command_timeout": 60,
        }
    return options


def _create_engine(settings: Settings) -> AsyncEngine:
    """Create a new SQLAlchemy async engine"""
    return create_async_engine(settings.database_url, **_engine_options(settings))


def init_engine(settings: Settings = None):
    """Initialize the database engine and session factory"""
    global _engine, _async_session

    settings = settings or get_settings()
    _engine = _create_engine(settings)
    _async_session = async_sessionmaker(
        _engine,
        expire_on_commit=False,
        autoflush=False
    )
    logger.info("Database engine initialized")


def get_engine() -> AsyncEngine:
    if _engine is None:
        init_engine()
    return _engine


def get_session_factory() -> async_sessionmaker:
    """Dependency returning the session factory the point stores draw from"""
    if _async_session is None:
        init_engine()
    return _async_session


async def init_db():
    """Create the point tables if they do not exist"""
    # Import models so they register on Base.metadata
    from transit_points import models  # noqa: F401

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured")


async def health_check() -> dict:
    """Check database connection health"""
    start = time.time()
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        latency = (time.time() - start) * 1000
        return {'healthy': True, 'latency_ms': latency, 'error': None}
    except Exception as e:
        latency = (time.time() - start) * 1000
        logger.warning(f"Database health check failed: {e}")
        return {'healthy': False, 'latency_ms': latency, 'error': str(e)}


async def close_db():
    """Close database engine gracefully"""
    global _engine, _async_session
    if _engine:
        await _engine.dispose()
        _engine = None
        _async_session = None
        logger.info("Database engine closed")
