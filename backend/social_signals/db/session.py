"""
Database session management module.
"""
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker

from social_signals.core.config import settings

DATABASE_URL = settings.DB_URI

# Create SQLAlchemy engine
engine = create_async_engine(
    DATABASE_URL,
    pool_pre_ping=True,
    pool_size=10,
    max_overflow=20,
    pool_timeout=30,
    pool_recycle=1800,
)

# Create session factory
SessionLocal = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Get database session.
    Handles commit on success and rollback on failure.

    Yields:
        AsyncSession: Database session
    """
    async with SessionLocal() as session:
        try:
            yield session
            # If the request handler completed successfully, commit the transaction
            await session.commit()
        except Exception:
            # If any exception occurred during the request handling, rollback
            await session.rollback()
            raise # Re-raise the exception so FastAPI can handle it
        finally:
            await session.close()
