"""End-user session flow: login, logout, location and profile reads.

No role or confirmation gate here; the client decides whether to route an
unconfirmed user to profile completion. Portal logins live in portal.py.
"""

import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from exploria_api.accounts.errors import AccountNotActive, NotFound
from exploria_api.accounts.store import AccountStore, public_profile
from exploria_api.audit.journal import AuthJournal, ClientContext
from exploria_api.context import user_refid_var
from exploria_api.db.models import AccountStatus
from exploria_api.identity.firebase_client import FirebaseIdentityClient, confirm_identity

logger = logging.getLogger(__name__)


class UserSessionService:
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

    def login(
        self,
        firebase_uid: str,
        email: str,
        client: ClientContext,
        *,
        auth_method: str = "email_password",
        id_token: Optional[str] = None,
    ) -> dict[str, Any]:
        """End-user login.

        Raises:
            IdentityRejected: ID token required or not matching the body
            NotFound: no account for the (email, firebase_uid) pair
            AccountNotActive: account suspended, locked or deleted
        """
        event = client.event("login", firebase_uid=firebase_uid, auth_method=auth_method)
        with self.journal.attempt(event, self.db):
            confirm_identity(
                self.identity_client,
                id_token,
                firebase_uid,
                email,
                required=self.require_id_token,
            )

            account = self.store.find_by_credentials(email, firebase_uid)
            if account is None:
                raise NotFound("User not found. Please register first.")
            event.user_refid = account.user_refid
            user_refid_var.set(account.user_refid)

            if account.account_status != AccountStatus.ACTIVE.value:
                raise AccountNotActive(account.account_status)

            self.store.touch_last_login(account, client.ip_address, client.device_type)

        logger.info("auth.login.success", extra={"user_refid": account.user_refid})
        return {
            "user_refid": account.user_refid,
            "email": account.email,
            "firstname": account.firstname,
            "lastname": account.lastname,
            "display_name": account.display_name,
            "profile_photo_url": account.profile_photo_url,
            "confirmed": bool(account.confirmed),
            "is_operator": bool(account.is_operator),
            "is_admin": bool(account.is_admin),
            "is_staff": bool(account.is_staff),
            "member_tier": account.member_tier,
            "loyalty_points": account.loyalty_points,
            "preferred_language": account.preferred_language,
            "preferred_currency": account.preferred_currency,
        }

    def logout(self, user_refid: str, client: ClientContext) -> None:
        """Journal a logout. Stateless: no server-side session to revoke.

        Raises:
            NotFound: unknown user_refid
        """
        event = client.event("logout", user_refid=user_refid, auth_method="email_password")
        with self.journal.attempt(event, self.db):
            account = self.store.get_by_refid(user_refid)
            if account is None:
                raise NotFound("User not found")
            event.firebase_uid = account.firebase_uid
            user_refid_var.set(account.user_refid)
            # Close the read transaction before the journal writes
            self.db.commit()

        logger.info("auth.logout.success", extra={"user_refid": user_refid})

    def update_location(self, user_refid: str, longitude: float, latitude: float) -> None:
        """Store the live location point.

        Raises:
            NotFound: unknown user_refid
        """
        if not self.store.update_location(user_refid, longitude, latitude):
            raise NotFound("User not found")
        logger.info("auth.location.updated", extra={"user_refid": user_refid})

    def get_profile(self, user_refid: str) -> dict[str, Any]:
        account = self.store.get_by_refid(user_refid)
        if account is None:
            raise NotFound("User not found")
        return public_profile(account)
