"""Database engine builder (SSOT).

- Default pool: NullPool for PostgreSQL (external pooler in front of the DB)
- ENV: EXPLORIA_DB_POOL=nullpool|queuepool (default: nullpool)
- SQLite (local dev / tests): check_same_thread disabled, default pool
"""

import logging
import os
import re
from typing import Any

from sqlalchemy import Engine, NullPool, create_engine
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)


def _mask_password(url: str) -> str:
    """Mask password in database URL for safe logging."""
    return re.sub(r"://([^:]+):([^@]+)@", r"://\1:***@", url)


def build_engine(database_url: str | None = None) -> Engine:
    """
    Build SQLAlchemy engine.

    Args:
        database_url: Database URL. If None, reads from env DATABASE_URL.

    Returns:
        SQLAlchemy Engine instance.

    Raises:
        ValueError: If no URL is available or EXPLORIA_DB_POOL is invalid.

    Environment Variables:
        DATABASE_URL: Runtime connection string (required if not passed as arg)
        EXPLORIA_DB_POOL: Pool mode - "nullpool" (default) | "queuepool"
        EXPLORIA_DB_POOL_SIZE: QueuePool size (default: 5, only for queuepool)
        EXPLORIA_DB_MAX_OVERFLOW: QueuePool overflow (default: 10, only for queuepool)
    """
    url = database_url or os.getenv("DATABASE_URL")
    if not url:
        raise ValueError(
            "DATABASE_URL is required. "
            "Pass as argument or set DATABASE_URL environment variable."
        )

    if url.startswith("sqlite"):
        engine = create_engine(url, connect_args={"check_same_thread": False})
        logger.debug("Database engine created: sqlite")
        return engine

    connect_args: dict[str, Any] = {}
    app_name = os.getenv("EXPLORIA_DB_APPLICATION_NAME", "exploria-auth-api")
    if app_name:
        connect_args["application_name"] = app_name

    pool_mode = os.getenv("EXPLORIA_DB_POOL", "nullpool").lower()

    if pool_mode == "nullpool":
        engine = create_engine(
            url,
            poolclass=NullPool,
            pool_pre_ping=True,
            connect_args=connect_args,
        )
    elif pool_mode == "queuepool":
        pool_size = int(os.getenv("EXPLORIA_DB_POOL_SIZE", "5"))
        max_overflow = int(os.getenv("EXPLORIA_DB_MAX_OVERFLOW", "10"))
        engine = create_engine(
            url,
            pool_pre_ping=True,
            pool_size=pool_size,
            max_overflow=max_overflow,
            connect_args=connect_args,
        )
    else:
        raise ValueError(
            f"Invalid EXPLORIA_DB_POOL value: {pool_mode}. "
            "Must be 'nullpool' or 'queuepool'."
        )

    # DO NOT log full URL with password
    logger.debug(
        "Database engine created: pool=%s, url=%s",
        engine.pool.__class__.__name__,
        _mask_password(url),
    )

    return engine


def build_sessionmaker(engine: Engine) -> sessionmaker[Session]:
    """
    Build SQLAlchemy sessionmaker.

    Args:
        engine: SQLAlchemy Engine instance.

    Returns:
        sessionmaker instance configured with autocommit=False, autoflush=False.
    """
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
