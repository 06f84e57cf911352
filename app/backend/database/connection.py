"""
Database Connection Management for FastAPI Backend

Uses a SQLAlchemy engine with a bounded connection pool (psycopg2 driver).
Reads configuration from environment variables.

The engine and session factory are created once by the process entry point
(the FastAPI lifespan in main.py, or a script's main()) and handed to the
code that needs them; nothing here holds a module-level connection.
"""

import logging
import os
from typing import Generator, Optional

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

logger = logging.getLogger(__name__)


def get_database_url() -> str:
    """
    Get database URL from environment variables.

    DATABASE_URL wins when set. Otherwise the URL is assembled from:
    - DB_HOST: Database host (default: localhost)
    - DB_PORT: Database port (default: 5433)
    - DB_NAME: Database name (default: netzero)
    - DB_USER: Database user (default: postgres)
    - DB_PASSWORD: Database password (default: password)
    - DB_SSLMODE: SSL mode (optional)

    Returns:
        Database URL string for SQLAlchemy
    """
    url = os.getenv('DATABASE_URL')
    if url:
        return url

    host = os.getenv('DB_HOST', 'localhost')
    port = os.getenv('DB_PORT', '5433')
    database = os.getenv('DB_NAME', 'netzero')
    user = os.getenv('DB_USER', 'postgres')
    password = os.getenv('DB_PASSWORD', 'password')
    sslmode = os.getenv('DB_SSLMODE', '')

    url = f"postgresql://{user}:{password}@{host}:{port}/{database}"
    if sslmode:
        url += f"?sslmode={sslmode}"
    return url


def create_db_engine(database_url: Optional[str] = None) -> Engine:
    """
    Create the SQLAlchemy engine.

    Pool size comes from DB_POOL_SIZE (default 5) and DB_MAX_OVERFLOW
    (default 10).

    Args:
        database_url: Explicit URL; defaults to get_database_url()

    Returns:
        SQLAlchemy engine instance
    """
    database_url = database_url or get_database_url()
    engine = create_engine(
        database_url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=int(os.getenv('DB_POOL_SIZE', '5')),
        max_overflow=int(os.getenv('DB_MAX_OVERFLOW', '10')),
        echo=False  # Set to True for SQL query logging
    )
    logger.info(f"SQLAlchemy engine created: {database_url.split('@')[1] if '@' in database_url else database_url}")
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    """Build the session factory bound to an engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    FastAPI dependency that provides a database session.

    The session factory is the one the application lifespan stored on
    app.state.

    Usage:
        @router.get("/items")
        def get_items(db: Session = Depends(get_db)):
            ...

    Yields:
        SQLAlchemy Session instance

    The session is automatically closed after the request completes.
    """
    SessionLocal = request.app.state.session_factory
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def close_engine(engine: Optional[Engine]):
    """
    Dispose of the SQLAlchemy engine.
    Should be called on application shutdown.
    """
    if engine:
        try:
            engine.dispose()
            logger.info("SQLAlchemy engine closed")
        except Exception as e:
            logger.error(f"Error closing engine: {e}")
