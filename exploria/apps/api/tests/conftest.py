"""Pytest configuration and fixtures."""

import os
import sys
from pathlib import Path

# Inject sys.path for reliable pytest imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))  # => .../apps/api

# Module-level engine in db.session must never point at a dev database file
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("EXPLORIA_ENV", "test")

from datetime import date, datetime, timezone
from typing import Any, Callable, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from exploria_api.accounts.refids import generate_referral_code, generate_user_refid
from exploria_api.audit.journal import AuthJournal
from exploria_api.db.models import Account, AuthHistory, Base
from exploria_api.db.session import get_db
from exploria_api.deps import get_journal, get_require_id_token
from exploria_api.main import app

TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def session_factory() -> sessionmaker:
    """
    Fresh in-memory SQLite database per test.

    StaticPool keeps one connection so the request session and the
    journal's own sessions see the same database.
    """
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    try:
        yield factory
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture(scope="function")
def db_session(session_factory: sessionmaker) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def journal(session_factory: sessionmaker) -> AuthJournal:
    return AuthJournal(session_factory)


@pytest.fixture
def client(session_factory: sessionmaker, journal: AuthJournal) -> TestClient:
    """TestClient with get_db/get_journal bound to the test database."""

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_journal] = lambda: journal
    app.dependency_overrides[get_require_id_token] = lambda: False
    app.state.identity_client = None
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        app.state.identity_client = None


@pytest.fixture
def make_account(db_session: Session) -> Callable[..., Account]:
    """Insert an account directly (role flags are provisioned out of band)."""

    def _make(
        email: str = "staff@exploria.id",
        firebase_uid: str = "uid-staff",
        confirmed: bool = True,
        is_admin: bool = False,
        is_staff: bool = False,
        is_operator: bool = False,
        account_status: str = "active",
        **fields: Any,
    ) -> Account:
        now = datetime.now(timezone.utc)
        account = Account(
            user_refid=generate_user_refid(now),
            firebase_uid=firebase_uid,
            email=email,
            confirmed=confirmed,
            is_admin=is_admin,
            is_staff=is_staff,
            is_operator=is_operator,
            account_status=account_status,
            referral_code=generate_referral_code(),
            firstname=fields.pop("firstname", "Ada" if confirmed else None),
            lastname=fields.pop("lastname", "Lovelace" if confirmed else None),
            birthday=fields.pop("birthday", date(1990, 1, 1) if confirmed else None),
            **fields,
        )
        db_session.add(account)
        db_session.commit()
        db_session.refresh(account)
        return account

    return _make


@pytest.fixture
def journal_rows(session_factory: sessionmaker) -> Callable[..., list[AuthHistory]]:
    """Read back journal rows, optionally filtered by auth_type."""

    def _rows(auth_type: Optional[str] = None) -> list[AuthHistory]:
        session = session_factory()
        try:
            query = session.query(AuthHistory).order_by(AuthHistory.auth_timestamp)
            if auth_type is not None:
                query = query.filter(AuthHistory.auth_type == auth_type)
            return query.all()
        finally:
            session.close()

    return _rows
