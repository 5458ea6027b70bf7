"""Database engine + session factory for the action queue and usage tables.

- file SQLite: NullPool (each request opens its own connection)
- in-memory SQLite: StaticPool, so every session sees the same database
- PostgreSQL/MySQL: pooled, pre-pinged; rollback reads the queue on every call
"""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

from app.core.config import settings

IN_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def build_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool if url in IN_MEMORY_URLS else NullPool,
        )
    return create_engine(
        url,
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=3600,
        pool_pre_ping=True,
    )


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
