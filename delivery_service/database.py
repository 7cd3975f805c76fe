from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from . import config
import logging

logger = logging.getLogger(__name__)

Base = declarative_base()

engine = None
AsyncSessionFactory = None


def _masked(url: str) -> str:
    if config.DATABASE_PASSWORD and config.DATABASE_PASSWORD in url:
        return url.replace(config.DATABASE_PASSWORD, '***') # Hide password
    return url


def configure(url: str = config.DATABASE_URL, echo: bool = config.DATABASE_ECHO):
    """(Re)binds the module-level engine and session factory to a database URL."""
    global engine, AsyncSessionFactory
    try:
        logger.info(f"Attempting to create engine with URL: {_masked(url)}")
        engine = create_async_engine(url, echo=echo, pool_pre_ping=True)
        AsyncSessionFactory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        logger.info("Async database engine and session factory created successfully.")
    except Exception as e:
        logger.error(f"FATAL: Failed to create database engine or session factory: {e}")
        raise RuntimeError(f"Could not initialize database connection: {e}")
    return engine


configure()


async def get_db_session() -> AsyncSession:
    """FastAPI dependency to inject DB session."""
    async with AsyncSessionFactory() as session:
        try:
            yield session
        except Exception as e:
            logger.error(f"Rolling back session due to error: {e}")
            await session.rollback()
            raise
