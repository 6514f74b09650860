"""Registration and profile completion.

Lifecycle: register (confirmed=false) -> complete_profile (confirmed=true,
exactly once) -> portal/user login.
"""

import logging
from datetime import date
from typing import Any, Optional

from sqlalchemy.orm import Session

from exploria_api.accounts.errors import AlreadyConfirmed, NotFound
from exploria_api.accounts.store import AccountStore, email_conflict, uid_conflict
from exploria_api.audit.journal import AuthJournal, ClientContext
from exploria_api.context import user_refid_var
from exploria_api.identity.firebase_client import FirebaseIdentityClient, confirm_identity

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"
DEFAULT_CURRENCY = "USD"

# Optional profile fields copied as given (None stays None)
_OPTIONAL_PROFILE_FIELDS = (
    "mobile_number",
    "mobile_country_code",
    "nationality",
    "home_country",
    "home_city",
)


class RegistrationService:
    def __init__(
        self,
        db: Session,
        journal: AuthJournal,
        identity_client: Optional[FirebaseIdentityClient] = None,
        require_id_token: bool = False,
    ) -> None:
        self.db = db
        self.store = AccountStore(db)
        self.journal = journal
        self.identity_client = identity_client
        self.require_id_token = require_id_token

    def check_email(self, email: str) -> dict[str, Any]:
        account = self.store.get_by_email(email)
        if account is None:
            return {"exists": False}
        return {
            "exists": True,
            "user_refid": account.user_refid,
            "confirmed": bool(account.confirmed),
        }

    def register(
        self,
        firebase_uid: str,
        email: str,
        client: ClientContext,
        *,
        display_name: Optional[str] = None,
        profile_photo_url: Optional[str] = None,
        email_verified: bool = False,
        auth_method: str = "email_password",
        id_token: Optional[str] = None,
    ) -> dict[str, Any]:
        """Create an unconfirmed account for a Firebase identity.

        Raises:
            IdentityRejected: ID token required or not matching the body
            Conflict: firebase_uid or email already registered
        """
        event = client.event(
            "login",
            firebase_uid=firebase_uid,
            auth_method=auth_method,
            is_new_device=True,
        )
        with self.journal.attempt(event, self.db):
            confirm_identity(
                self.identity_client,
                id_token,
                firebase_uid,
                email,
                required=self.require_id_token,
            )

            existing = self.store.get_by_firebase_uid(firebase_uid)
            if existing is not None:
                event.user_refid = existing.user_refid
                raise uid_conflict(existing)

            existing = self.store.get_by_email(email)
            if existing is not None:
                raise email_conflict(existing)

            account = self.store.create(
                firebase_uid,
                email,
                display_name=display_name,
                profile_photo_url=profile_photo_url,
                email_verified=email_verified,
                registration_source=client.device_type,
                last_login_ip=client.ip_address,
            )
            event.user_refid = account.user_refid
            user_refid_var.set(account.user_refid)

        logger.info(
            "auth.register.success",
            extra={"user_refid": account.user_refid, "registration_source": client.device_type},
        )
        return {
            "user_refid": account.user_refid,
            "email": account.email,
            "display_name": account.display_name,
            "confirmed": bool(account.confirmed),
            "referral_code": account.referral_code,
            "requires_profile_completion": True,
        }

    def complete_profile(
        self,
        user_refid: str,
        *,
        firstname: str,
        lastname: str,
        birthday: date,
        gender: str,
        preferred_language: Optional[str] = None,
        preferred_currency: Optional[str] = None,
        **optional: Optional[str],
    ) -> dict[str, Any]:
        """Write the profile and confirm the account, once.

        Raises:
            NotFound: unknown user_refid
            AlreadyConfirmed: profile already completed (fields unchanged)
        """
        account = self.store.get_by_refid(user_refid)
        if account is None:
            raise NotFound("User not found")
        if account.confirmed:
            raise AlreadyConfirmed("User profile is already confirmed")

        fields: dict[str, Any] = {
            "firstname": firstname,
            "lastname": lastname,
            "display_name": f"{firstname} {lastname}",
            "birthday": birthday,
            "gender": gender,
            "preferred_language": preferred_language or DEFAULT_LANGUAGE,
            "preferred_currency": preferred_currency or DEFAULT_CURRENCY,
        }
        for name in _OPTIONAL_PROFILE_FIELDS:
            fields[name] = optional.get(name)

        # Guarded write: a concurrent completion that got there first wins
        if not self.store.complete_profile(user_refid, fields):
            raise AlreadyConfirmed("User profile is already confirmed")

        self.db.refresh(account)
        user_refid_var.set(account.user_refid)
        logger.info("auth.complete_profile.success", extra={"user_refid": account.user_refid})

        return {
            "user_refid": account.user_refid,
            "email": account.email,
            "firstname": account.firstname,
            "lastname": account.lastname,
            "display_name": account.display_name,
            "birthday": account.birthday.isoformat() if account.birthday else None,
            "gender": account.gender,
            "mobile_number": account.mobile_number,
            "confirmed": bool(account.confirmed),
            "referral_code": account.referral_code,
        }
