"""Firebase identity client.

Replaces the process-wide Firebase default app with an explicit client:
built once at startup (main.py), stored on app.state and injected into
the flows. When Firebase is not configured no client exists and the
firebase_uid in the request body is trusted.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials
from firebase_admin.exceptions import FirebaseError

from exploria_api.accounts.errors import IdentityRejected
from exploria_api.config.env import get_firebase_credentials_file, get_firebase_project_id

logger = logging.getLogger(__name__)

# Named app so tests and other SDK users keep the default app slot free
FIREBASE_APP_NAME = "exploria-auth"


@dataclass(frozen=True)
class VerifiedIdentity:
    """Claims taken from a verified Firebase ID token."""

    uid: str
    email: Optional[str] = None
    email_verified: bool = False


class FirebaseIdentityClient:
    """Verifies Firebase ID tokens against one firebase_admin App."""

    def __init__(self, app: Any) -> None:
        self._app = app

    @classmethod
    def from_config(
        cls,
        project_id: Optional[str] = None,
        credentials_file: Optional[str] = None,
    ) -> "FirebaseIdentityClient":
        if credentials_file:
            credential = credentials.Certificate(credentials_file)
        else:
            credential = credentials.ApplicationDefault()

        options = {"projectId": project_id} if project_id else None
        app = firebase_admin.initialize_app(credential, options=options, name=FIREBASE_APP_NAME)
        logger.info(
            "identity.firebase_app_initialized",
            extra={"project_id": project_id, "credential_source": "file" if credentials_file else "adc"},
        )
        return cls(app)

    def verify(self, id_token: str) -> VerifiedIdentity:
        """Verify an ID token.

        Raises:
            IdentityRejected: token malformed, expired, revoked or unverifiable
        """
        try:
            decoded = firebase_auth.verify_id_token(id_token, app=self._app)
        except (ValueError, FirebaseError) as exc:
            logger.warning(
                "identity.token_rejected",
                extra={"error_type": type(exc).__name__},
            )
            raise IdentityRejected("Invalid Firebase ID token") from exc

        uid = str(decoded.get("uid") or decoded.get("sub") or "").strip()
        if not uid:
            raise IdentityRejected("Firebase ID token missing user identity")

        return VerifiedIdentity(
            uid=uid,
            email=decoded.get("email"),
            email_verified=bool(decoded.get("email_verified", False)),
        )

    def close(self) -> None:
        firebase_admin.delete_app(self._app)


def build_identity_client() -> Optional[FirebaseIdentityClient]:
    """Build the client from env, or return None when Firebase is not configured."""
    project_id = get_firebase_project_id()
    credentials_file = get_firebase_credentials_file()
    if not (project_id or credentials_file):
        logger.info("identity.firebase_not_configured")
        return None
    return FirebaseIdentityClient.from_config(project_id, credentials_file)


def confirm_identity(
    client: Optional[FirebaseIdentityClient],
    id_token: Optional[str],
    firebase_uid: str,
    email: Optional[str] = None,
    *,
    required: bool = False,
) -> Optional[VerifiedIdentity]:
    """Check that the caller holds a Firebase identity matching the body.

    - required and no token (or no client): IdentityRejected
    - token supplied and a client configured: verified, uid/email must match
    - otherwise the body is trusted and None is returned

    Raises:
        IdentityRejected: verification failed or claims do not match
    """
    if not id_token:
        if required:
            raise IdentityRejected("Firebase ID token required")
        return None

    if client is None:
        if required:
            raise IdentityRejected("Identity verification is not available")
        return None

    identity = client.verify(id_token)
    if identity.uid != firebase_uid:
        raise IdentityRejected("Firebase ID token does not match firebase_uid")
    if email and identity.email and identity.email.lower() != email.lower():
        raise IdentityRejected("Firebase ID token does not match email")
    return identity
