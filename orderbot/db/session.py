"""Database engine and session factory."""

from __future__ import annotations

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from orderbot.db.base import Base


def build_engine(database_url: str) -> Engine:
    if not database_url:
        raise RuntimeError("DATABASE_URL is not set. Configure it in the environment or .env file.")
    return create_engine(database_url, pool_pre_ping=True)


def build_session_factory(engine: Engine, *, create_schema: bool = True) -> sessionmaker[Session]:
    """Return a session factory bound to ``engine``, creating missing tables."""
    if create_schema:
        Base.metadata.create_all(engine)
    return sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
