"""SQLAlchemy ORM Models for the Exploria account store."""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import (
    BIGINT,
    BOOLEAN,
    DATE,
    FLOAT,
    TEXT,
    TIMESTAMP,
    CheckConstraint,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class AccountStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    LOCKED = "locked"
    DELETED = "deleted"


class PortalType(str, Enum):
    ADMIN = "admin"
    STAFF = "staff"
    OPERATOR = "operator"


class Account(Base):
    """Internal user account linked 1:1 to a Firebase UID.

    Role flags are provisioned out of band; no API flow writes them.
    """

    __tablename__ = "accounts"

    user_refid: Mapped[str] = mapped_column(TEXT, primary_key=True)
    firebase_uid: Mapped[str] = mapped_column(TEXT, nullable=False)
    email: Mapped[str] = mapped_column(TEXT, nullable=False)
    email_verified: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=False)

    # Lifecycle
    confirmed: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=False)
    account_status: Mapped[str] = mapped_column(
        TEXT, nullable=False, default=AccountStatus.ACTIVE.value
    )

    # Role flags
    is_admin: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=False)
    is_staff: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=False)
    is_operator: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=False)

    # Profile (set at profile completion)
    firstname: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    lastname: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    display_name: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    birthday: Mapped[Optional[date]] = mapped_column(DATE, nullable=True)
    gender: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    mobile_number: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    mobile_country_code: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    nationality: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    home_country: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    home_city: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    preferred_language: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    preferred_currency: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    profile_photo_url: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)

    # Referral / loyalty (read-only in this service)
    referral_code: Mapped[str] = mapped_column(TEXT, nullable=False)
    registration_source: Mapped[str] = mapped_column(TEXT, nullable=False, default="web")
    member_tier: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    loyalty_points: Mapped[int] = mapped_column(BIGINT, nullable=False, default=0)

    # Live location, written with bound parameters only
    gps_longitude: Mapped[Optional[float]] = mapped_column(FLOAT, nullable=True)
    gps_latitude: Mapped[Optional[float]] = mapped_column(FLOAT, nullable=True)
    gps_updated_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    # Login bookkeeping
    last_login_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )
    last_login_ip: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    last_login_device: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    __table_args__ = (
        # Storage-level arbiters for concurrent registration
        UniqueConstraint("firebase_uid", name="uq_accounts_firebase_uid"),
        UniqueConstraint("email", name="uq_accounts_email"),
        UniqueConstraint("referral_code", name="uq_accounts_referral_code"),
        CheckConstraint(
            "account_status IN ('active', 'suspended', 'locked', 'deleted')",
            name="ck_accounts_status",
        ),
        Index("idx_accounts_email_uid", "email", "firebase_uid"),
    )

    def has_role(self, portal_type: str) -> bool:
        """Return the role flag matching the portal type."""
        if portal_type == PortalType.ADMIN.value:
            return bool(self.is_admin)
        if portal_type == PortalType.STAFF.value:
            return bool(self.is_staff)
        if portal_type == PortalType.OPERATOR.value:
            return bool(self.is_operator)
        return False


class AuthHistory(Base):
    """Append-only journal of authentication events.

    user_refid is best-effort: failed attempts before an account is resolved
    carry only the firebase_uid.
    """

    __tablename__ = "auth_history"

    id: Mapped[str] = mapped_column(TEXT, primary_key=True)
    auth_refid: Mapped[str] = mapped_column(TEXT, nullable=False)
    user_refid: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    firebase_uid: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)

    auth_type: Mapped[str] = mapped_column(TEXT, nullable=False)  # login/logout
    auth_method: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    auth_status: Mapped[str] = mapped_column(TEXT, nullable=False, default="success")
    failure_reason: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    portal_type: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)

    # Device metadata
    device_type: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    device_model: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    device_name: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    os_name: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    os_version: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    browser_name: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    browser_version: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    app_version: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)

    # Network metadata
    ip_address: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)

    is_new_device: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, default=False)
    request_id: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)

    auth_timestamp: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    __table_args__ = (
        Index("idx_auth_history_user_ts", "user_refid", "auth_timestamp"),
        Index("idx_auth_history_uid", "firebase_uid"),
        UniqueConstraint("auth_refid", name="uq_auth_history_auth_refid"),
    )
