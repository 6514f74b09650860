"""Database session management.

Uses the unified engine builder (SSOT). The journal writes through
SessionLocal directly so it never shares the request transaction.
"""

from typing import Generator

from sqlalchemy.orm import Session

from exploria_api.config.env import get_database_url
from exploria_api.db.engine import build_engine, build_sessionmaker

# Production fail-fast happens inside get_database_url()
DATABASE_URL = get_database_url()

engine = build_engine(DATABASE_URL)

SessionLocal = build_sessionmaker(engine)


def get_db() -> Generator[Session, None, None]:
    """
    Get database session.

    Yields:
        Session: SQLAlchemy session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
