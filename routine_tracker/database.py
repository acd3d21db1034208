"""
Database wiring: engine, session factory and declarative base.

There is no module-level engine. The application (or the worker, or a test)
builds one from its configuration and hands the session factory to whoever
needs store access.
"""
from contextlib import contextmanager
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()


def create_db_engine(database_url: str) -> Engine:
    """Create an engine for the given URL (SQLite gets thread-sharing enabled)"""
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url, pool_pre_ping=True)


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def init_db(engine: Engine) -> None:
    """Create all tables that do not exist yet"""
    from routine_tracker import models  # noqa: F401  registers tables on Base

    Base.metadata.create_all(bind=engine)


@contextmanager
def session_scope(session_factory: sessionmaker) -> Iterator[Session]:
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


def get_db(request: Request) -> Iterator[Session]:
    """FastAPI dependency yielding a session from the app's factory"""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
