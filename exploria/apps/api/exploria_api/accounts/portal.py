"""Role-gated portal login (admin / staff / operator).

Access rule for portal P:
    confirmed AND role_P AND account_status == "active"

The check is staged so the client learns which gate failed:
    1. (email, firebase_uid) lookup  -> NotFound
    2. confirmed                     -> ProfileIncomplete
    3. role flag for P               -> Forbidden
    4. account_status == active      -> AccountNotActive

The per-portal entry points (/portal/admin/login, ...) use the same staged
check with the portal fixed.
"""

import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from exploria_api.accounts.errors import (
    AccountFlowError,
    AccountNotActive,
    Forbidden,
    NotFound,
    ProfileIncomplete,
    SessionInvalid,
)
from exploria_api.accounts.store import AccountStore
from exploria_api.audit.journal import AuthJournal, ClientContext
from exploria_api.context import portal_type_var, user_refid_var
from exploria_api.db.models import Account, AccountStatus, PortalType
from exploria_api.identity.firebase_client import FirebaseIdentityClient, confirm_identity

logger = logging.getLogger(__name__)

ROLE_DENIED_MESSAGES: dict[str, str] = {
    PortalType.ADMIN.value: "Access denied. Administrator privileges required.",
    PortalType.STAFF.value: "Access denied. Staff privileges required.",
    PortalType.OPERATOR.value: "Access denied. Operator privileges required.",
}

SUCCESS_MESSAGES: dict[str, str] = {
    PortalType.ADMIN.value: "Administrator login successful",
    PortalType.STAFF.value: "Staff login successful",
    PortalType.OPERATOR.value: "Operator login successful",
}


def check_portal_access(account: Account, portal_type: str) -> None:
    """Stages 2-4 of the access rule. Raises the first gate that fails."""
    if not account.confirmed:
        raise ProfileIncomplete(account.user_refid)

    if not account.has_role(portal_type):
        message = ROLE_DENIED_MESSAGES.get(portal_type, "Invalid portal type specified.")
        raise Forbidden(message)

    if account.account_status != AccountStatus.ACTIVE.value:
        raise AccountNotActive(account.account_status)


class PortalAuthService:
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
        email: str,
        firebase_uid: str,
        portal_type: str,
        client: ClientContext,
        *,
        id_token: Optional[str] = None,
    ) -> dict[str, Any]:
        """Portal login with the staged access check.

        Raises:
            IdentityRejected: ID token required or not matching the body
            NotFound: no account for the (email, firebase_uid) pair
            ProfileIncomplete: account not confirmed
            Forbidden: role flag for portal_type not set
            AccountNotActive: account suspended, locked or deleted
        """
        portal_type_var.set(portal_type)
        event = client.event(
            "login",
            firebase_uid=firebase_uid,
            auth_method="firebase",
            portal_type=portal_type,
        )
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
                raise NotFound("User not found or Firebase UID mismatch")
            event.user_refid = account.user_refid
            user_refid_var.set(account.user_refid)

            check_portal_access(account, portal_type)

            self.store.touch_last_login(account, client.ip_address, client.device_type)

        logger.info(
            "auth.portal_login.success",
            extra={"user_refid": account.user_refid, "portal_type": portal_type},
        )
        return {
            "user_refid": account.user_refid,
            "email": account.email,
            "display_name": account.display_name,
            "firstname": account.firstname,
            "lastname": account.lastname,
            "profile_photo_url": account.profile_photo_url,
            "portal_type": portal_type,
            "is_admin": bool(account.is_admin),
            "is_staff": bool(account.is_staff),
            "is_operator": bool(account.is_operator),
        }

    def verify_session(self, user_refid: str, portal_type: str) -> dict[str, Any]:
        """Re-check portal access for an existing client-side session.

        Read-only: neither login bookkeeping nor the journal is touched.

        Raises:
            SessionInvalid: any gate failed (message prefixed "Session invalid: ")
        """
        portal_type_var.set(portal_type)
        account = self.store.get_by_refid(user_refid)
        if account is None:
            raise SessionInvalid("Session invalid: User not found")
        user_refid_var.set(account.user_refid)

        try:
            check_portal_access(account, portal_type)
        except ProfileIncomplete as exc:
            raise SessionInvalid("Session invalid: Account not confirmed") from exc
        except AccountFlowError as exc:
            raise SessionInvalid(f"Session invalid: {exc.message}") from exc

        return {
            "user_refid": account.user_refid,
            "email": account.email,
            "display_name": account.display_name,
            "portal_type": portal_type,
        }

    def logout(self, user_refid: str, portal_type: Optional[str], client: ClientContext) -> None:
        """Journal a portal logout (portal "unknown" when not given).

        Raises:
            NotFound: unknown user_refid
        """
        portal = portal_type or "unknown"
        event = client.event(
            "logout",
            user_refid=user_refid,
            auth_method="firebase",
            portal_type=portal,
        )
        with self.journal.attempt(event, self.db):
            account = self.store.get_by_refid(user_refid)
            if account is None:
                raise NotFound("User not found")
            event.firebase_uid = account.firebase_uid
            user_refid_var.set(account.user_refid)
            self.db.commit()

        logger.info("auth.portal_logout.success", extra={"user_refid": user_refid, "portal_type": portal})
