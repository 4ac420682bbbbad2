"""Engine and session factory"""
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from app.core.config import settings


def build_engine(database_url: str, timeout_seconds: Optional[float] = None) -> Engine:
    """
    Create an engine whose calls are bounded by *timeout_seconds*.

    SQLite gets a busy timeout so concurrent writers wait instead of failing
    immediately; PostgreSQL gets connect and statement timeouts.
    """
    timeout = settings.STORE_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds

    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": timeout},
        )

    connect_args = {}
    if database_url.startswith("postgresql"):
        connect_args = {
            "connect_timeout": max(1, int(timeout)),
            "options": f"-c statement_timeout={int(timeout * 1000)}",
        }

    return create_engine(
        database_url,
        pool_size=20,
        max_overflow=20,
        pool_timeout=timeout,
        pool_recycle=1800,
        pool_pre_ping=True,
        connect_args=connect_args,
    )


engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
