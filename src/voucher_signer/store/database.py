"""Database engine and session configuration for the voucher store."""

from typing import Any, Dict

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


def create_store_engine(database_url: str, *, echo: bool = False) -> Engine:
    """
    Create an engine for ``database_url``.

    SQLite connections are shared with worker threads, since store calls run
    through ``asyncio.to_thread``. An in-memory URL (``sqlite://``) uses a
    single static connection so every session sees the same database.
    """
    kwargs: Dict[str, Any] = {"echo": echo}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True
    return create_engine(database_url, **kwargs)


def create_session_factory(engine: Engine) -> "sessionmaker[Session]":
    """Session factory bound to ``engine``."""
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def create_tables(engine: Engine) -> None:
    """Create all voucher store tables."""
    # Populate metadata before create_all.
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def drop_tables(engine: Engine) -> None:
    """Drop all voucher store tables."""
    Base.metadata.drop_all(bind=engine)
