"""Database configuration and session management."""

from typing import Any

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from receipt_tracker.config import get_settings

settings = get_settings()

Base: Any = declarative_base()


def build_engine(database_url: str, timeout_seconds: float = 10.0) -> Engine:
    """Create an engine for the remote receipt store.

    Postgres gets a connect timeout so an unreachable server fails fast and
    surfaces as a remote error instead of hanging the caller.
    """
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})

    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        pool_timeout=timeout_seconds,
        connect_args={"connect_timeout": int(timeout_seconds)},
    )


def build_session_factory(database_url: str, timeout_seconds: float = 10.0) -> sessionmaker:
    """Create a session factory bound to a fresh engine."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=build_engine(database_url, timeout_seconds),
    )


engine = build_engine(settings.database_url, settings.remote_timeout_seconds)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def init_db(bind: Engine | None = None) -> None:
    """Initialize the database by creating all tables."""
    # Import all models here so they are registered with Base.metadata
    from receipt_tracker import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
