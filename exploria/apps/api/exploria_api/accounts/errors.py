"""Account flow error taxonomy.

Each error carries the HTTP status, a user-safe message and optional
structured data. The app-level handler in main.py renders them as the
standard {success, message, data} envelope.
"""

from typing import Any, Optional


class AccountFlowError(Exception):
    """Base class for business-rule failures in the account flows."""

    status_code: int = 400
    reason: str = "account_flow_error"

    def __init__(self, message: str, data: Optional[dict[str, Any]] = None) -> None:
        self.message = message
        self.data = data
        super().__init__(message)


class NotFound(AccountFlowError):
    status_code = 404
    reason = "not_found"


class Conflict(AccountFlowError):
    status_code = 409
    reason = "conflict"


class AlreadyConfirmed(AccountFlowError):
    status_code = 400
    reason = "already_confirmed"


class ProfileIncomplete(AccountFlowError):
    """Account exists but has not completed its profile.

    data always carries requires_profile_completion and user_refid so the
    client can resume profile completion.
    """

    status_code = 403
    reason = "profile_incomplete"

    def __init__(self, user_refid: str) -> None:
        super().__init__(
            "Account not confirmed. Please complete your profile first.",
            data={"requires_profile_completion": True, "user_refid": user_refid},
        )
        self.user_refid = user_refid


class Forbidden(AccountFlowError):
    status_code = 403
    reason = "role_required"


class AccountNotActive(AccountFlowError):
    status_code = 403
    reason = "account_not_active"

    def __init__(self, account_status: str, message: Optional[str] = None) -> None:
        super().__init__(
            message or f"Account is {account_status}. Please contact support.",
            data={"account_status": account_status},
        )
        self.account_status = account_status


class SessionInvalid(AccountFlowError):
    status_code = 401
    reason = "session_invalid"


class IdentityRejected(AccountFlowError):
    """Firebase ID token missing, invalid or not matching the request body."""

    status_code = 401
    reason = "identity_rejected"
