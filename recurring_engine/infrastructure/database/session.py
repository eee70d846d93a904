"""Database session management with connection pooling"""

from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from recurring_engine.config import settings


def build_engine(database_url: Optional[str] = None) -> Engine:
    """Engine for the configured database; pool tuning applies to server databases only"""
    url = database_url or settings.database_url
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})

    # Connection pool: max 20 connections, recycle after 1 hour to avoid stale connections
    return create_engine(
        url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=10,
        max_overflow=10,
        pool_recycle=3600,
    )


engine = build_engine()

SessionLocal = sessionmaker(autoflush=False, bind=engine)


def get_db() -> Iterator[Session]:
    """Yield a session and always close it"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
