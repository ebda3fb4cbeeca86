"""Database engine and session factory.

The engine is created lazily and can be re-pointed at runtime through
``configure_database``; tests use that to give every test its own file.
"""

import os
from typing import Any, Dict, Optional

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

DEFAULT_DATABASE_URL = "sqlite:///./nodeflow.db"

Base = declarative_base()

# Bound to the current engine whenever one is created
SessionLocal = sessionmaker(autocommit=False, autoflush=False)

_engine: Optional[Engine] = None


def _engine_options(database_url: str, echo: bool) -> Dict[str, Any]:
    if database_url.startswith("sqlite"):
        # One shared connection: in-memory databases survive and sessions may cross threads
        return {"echo": echo, "poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    return {"echo": echo, "pool_pre_ping": True}


def get_database_engine(database_url: Optional[str] = None, echo: bool = False) -> Engine:
    """Return the current engine, creating it from ``database_url`` (or
    ``NODEFLOW_DATABASE_URL``) on first use."""
    global _engine

    if _engine is None:
        url = database_url or os.getenv("NODEFLOW_DATABASE_URL", DEFAULT_DATABASE_URL)
        _engine = create_engine(url, **_engine_options(url, echo))
        SessionLocal.configure(bind=_engine)

    return _engine


def configure_database(database_url: str, echo: bool = False) -> Engine:
    """Point the storage layer at ``database_url``, replacing any previous engine."""
    reset_database_engine()
    return get_database_engine(database_url, echo=echo)


def reset_database_engine():
    global _engine
    if _engine is not None:
        _engine.dispose()
    _engine = None


def get_db():
    """Yield a session bound to the current engine and close it afterwards."""
    get_database_engine()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables():
    """Create every table registered on ``Base``."""
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=get_database_engine())
