"""
Database engine, session factory, and metadata shared across the application.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from app.core.config import settings

logger = logging.getLogger(__name__)

# Engine tuning for PostgreSQL:
# - pool_pre_ping + pool_recycle keep stale pooled connections from hanging around.
# - statement_timeout caps runaway queries so the API layer recovers quickly.
_DEFAULT_CONNECT_ARGS: dict[str, Any] = {
    "options": f"-c statement_timeout={settings.database_statement_timeout_ms}",
    "connect_timeout": 5,
    "application_name": "tuitiondesk_backend",
}

_DEFAULT_POOL_KWARGS: dict[str, Any] = {
    "poolclass": QueuePool,
    "pool_size": settings.database_pool_size,
    "max_overflow": settings.database_max_overflow,
    "pool_timeout": 5,
    "pool_recycle": 300,
    "pool_pre_ping": True,
    "pool_use_lifo": True,
}


def _build_engine_kwargs(db_url: str) -> dict[str, Any]:
    """Return engine kwargs appropriate for the URL's dialect."""
    if db_url.startswith("sqlite"):
        # In-memory SQLite must share one connection across sessions and threads.
        return {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }

    kwargs = dict(_DEFAULT_POOL_KWARGS)
    kwargs["connect_args"] = dict(_DEFAULT_CONNECT_ARGS)
    return kwargs


def build_engine(db_url: str) -> Engine:
    """Create an engine for ``db_url`` with the pool settings for its dialect."""
    built = create_engine(db_url, future=True, **_build_engine_kwargs(db_url))
    logger.info("Database engine created for dialect %s", built.dialect.name)
    return built


engine: Engine = build_engine(settings.get_database_url())

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)

Base = declarative_base()


__all__ = [
    "Base",
    "SessionLocal",
    "build_engine",
    "engine",
]
