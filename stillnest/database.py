"""Database layer utilities for the SQLAlchemy-backed durable storage."""
from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

Base = declarative_base()


def build_engine(url: str) -> Engine:
    """Create an engine for the given URL; SQLite connections may cross threads."""

    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, pool_pre_ping=True, future=True, connect_args=connect_args)


def build_session_factory(bind: Engine) -> sessionmaker[Session]:
    return sessionmaker(
        bind=bind,
        autoflush=False,
        autocommit=False,
        future=True,
        expire_on_commit=False,
    )


def init_db(bind: Engine) -> None:
    """Initialise the storage schema by creating tables when missing."""
    # Import models to ensure they are registered on the metadata before create_all runs.
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=bind)


__all__ = [
    "Base",
    "build_engine",
    "build_session_factory",
    "init_db",
]
