"""Account store: persistence operations over the accounts table.

Uniqueness (user_refid, firebase_uid, email, referral_code) is enforced by
the table's unique constraints. Read-then-write checks in the flows only
produce precise error messages; the IntegrityError raised by the insert is
the final arbiter.
"""

import logging
from datetime import date, datetime, timezone
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from exploria_api.accounts.errors import Conflict
from exploria_api.accounts.refids import generate_referral_code, generate_user_refid
from exploria_api.db.models import Account, AccountStatus

logger = logging.getLogger(__name__)

# Fresh refid/referral code attempts when the insert collides on a generated key
MAX_CREATE_ATTEMPTS = 3


def normalize_email(email: str) -> str:
    """Emails are compared and stored lowercased."""
    return email.strip().lower()


def uid_conflict(existing: Account) -> Conflict:
    return Conflict(
        "User already registered with this Firebase account",
        data={"user_refid": existing.user_refid, "confirmed": bool(existing.confirmed)},
    )


def email_conflict(existing: Account) -> Conflict:
    return Conflict(
        "Email already registered",
        data={"user_refid": existing.user_refid},
    )


class AccountStore:
    """Account persistence bound to one request session."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # Reads

    def get_by_refid(self, user_refid: str) -> Optional[Account]:
        return self.db.get(Account, user_refid)

    def get_by_email(self, email: str) -> Optional[Account]:
        return self.db.scalars(
            select(Account).where(Account.email == normalize_email(email))
        ).first()

    def get_by_firebase_uid(self, firebase_uid: str) -> Optional[Account]:
        return self.db.scalars(
            select(Account).where(Account.firebase_uid == firebase_uid)
        ).first()

    def find_by_credentials(self, email: str, firebase_uid: str) -> Optional[Account]:
        """Lookup by the (email, firebase_uid) pair. Both must match."""
        return self.db.scalars(
            select(Account).where(
                Account.email == normalize_email(email),
                Account.firebase_uid == firebase_uid,
            )
        ).first()

    # Writes

    def create(
        self,
        firebase_uid: str,
        email: str,
        *,
        display_name: Optional[str] = None,
        profile_photo_url: Optional[str] = None,
        email_verified: bool = False,
        registration_source: str = "web",
        last_login_ip: Optional[str] = None,
    ) -> Account:
        """Insert a new unconfirmed account and commit.

        Raises:
            Conflict: firebase_uid or email already taken (including a
                concurrent registration that won the insert race).
            IntegrityError: generated keys kept colliding.
        """
        last_error: Optional[IntegrityError] = None
        for attempt in range(1, MAX_CREATE_ATTEMPTS + 1):
            now = datetime.now(timezone.utc)
            account = Account(
                user_refid=generate_user_refid(now),
                firebase_uid=firebase_uid,
                email=normalize_email(email),
                email_verified=email_verified,
                display_name=display_name,
                profile_photo_url=profile_photo_url,
                confirmed=False,
                is_admin=False,
                is_staff=False,
                is_operator=False,
                account_status=AccountStatus.ACTIVE.value,
                referral_code=generate_referral_code(),
                registration_source=registration_source,
                last_login_ip=last_login_ip,
                last_login_at=now,
                created_at=now,
                updated_at=now,
            )
            self.db.add(account)
            try:
                self.db.commit()
            except IntegrityError as exc:
                self.db.rollback()
                last_error = exc

                # Re-read the winning row to report the same Conflict as the pre-check
                existing = self.get_by_firebase_uid(firebase_uid)
                if existing is not None:
                    raise uid_conflict(existing) from exc
                existing = self.get_by_email(email)
                if existing is not None:
                    raise email_conflict(existing) from exc

                logger.warning(
                    "account_store.generated_key_collision",
                    extra={"attempt": attempt},
                )
                continue

            self.db.refresh(account)
            return account

        assert last_error is not None
        raise last_error

    def complete_profile(self, user_refid: str, fields: dict[str, Any]) -> bool:
        """Write profile fields and confirm the account in one statement.

        The update is guarded by confirmed = false; returns False when
        another request confirmed the account first (no row matched).
        """
        result = self.db.execute(
            update(Account)
            .where(Account.user_refid == user_refid, Account.confirmed.is_(False))
            .values(
                **fields,
                confirmed=True,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            return False
        self.db.commit()
        return True

    def touch_last_login(
        self,
        account: Account,
        ip_address: Optional[str],
        device: Optional[str],
    ) -> None:
        now = datetime.now(timezone.utc)
        account.last_login_at = now
        account.last_login_ip = ip_address
        account.last_login_device = device
        account.updated_at = now
        self.db.commit()

    def update_location(self, user_refid: str, longitude: float, latitude: float) -> bool:
        """Store the live geo point. Values only ever travel as bound parameters."""
        now = datetime.now(timezone.utc)
        result = self.db.execute(
            update(Account)
            .where(Account.user_refid == user_refid)
            .values(
                gps_longitude=longitude,
                gps_latitude=latitude,
                gps_updated_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            return False
        self.db.commit()
        return True


def public_profile(account: Account) -> dict[str, Any]:
    """Full profile payload (GET /auth/profile)."""
    return {
        "user_refid": account.user_refid,
        "email": account.email,
        "email_verified": bool(account.email_verified),
        "firstname": account.firstname,
        "lastname": account.lastname,
        "display_name": account.display_name,
        "mobile_number": account.mobile_number,
        "mobile_country_code": account.mobile_country_code,
        "birthday": _iso(account.birthday),
        "gender": account.gender,
        "profile_photo_url": account.profile_photo_url,
        "confirmed": bool(account.confirmed),
        "is_operator": bool(account.is_operator),
        "is_admin": bool(account.is_admin),
        "is_staff": bool(account.is_staff),
        "account_status": account.account_status,
        "preferred_language": account.preferred_language,
        "preferred_currency": account.preferred_currency,
        "home_country": account.home_country,
        "home_city": account.home_city,
        "nationality": account.nationality,
        "member_tier": account.member_tier,
        "loyalty_points": account.loyalty_points,
        "referral_code": account.referral_code,
        "created_at": _iso(account.created_at),
        "last_login_at": _iso(account.last_login_at),
    }


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None
