"""Portal (admin / staff / operator) endpoints.

Endpoints:
- POST /portal/login: Staged portal login, portal_type in body
- POST /portal/admin/login, /portal/staff/login, /portal/operator/login:
  Same staged check with the portal fixed by the path
- POST /portal/logout: Journal a portal logout
- POST /portal/verify-session: Re-check access for a client-held session
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from exploria_api.accounts.portal import SUCCESS_MESSAGES, PortalAuthService
from exploria_api.audit.journal import AuthJournal
from exploria_api.db.models import PortalType
from exploria_api.db.session import get_db
from exploria_api.deps import client_context, get_identity_client, get_journal, get_require_id_token
from exploria_api.identity.firebase_client import FirebaseIdentityClient
from exploria_api.schemas import (
    Envelope,
    FixedPortalLoginRequest,
    PortalLoginRequest,
    PortalLogoutRequest,
    VerifySessionRequest,
)

router = APIRouter(prefix="/portal", tags=["portal"])
logger = logging.getLogger(__name__)


def get_portal_service(
    db: Session = Depends(get_db),
    journal: AuthJournal = Depends(get_journal),
    identity_client: Optional[FirebaseIdentityClient] = Depends(get_identity_client),
    require_id_token: bool = Depends(get_require_id_token),
) -> PortalAuthService:
    return PortalAuthService(db, journal, identity_client, require_id_token)


def _login(
    service: PortalAuthService,
    request: Request,
    body: FixedPortalLoginRequest | PortalLoginRequest,
    portal_type: str,
    message: str,
) -> Envelope:
    client = client_context(request, body.device_info, body.ip_address, body.user_agent)
    data = service.login(body.email, body.firebase_uid, portal_type, client, id_token=body.id_token)
    return Envelope(success=True, message=message, data=data)


@router.post("/login", response_model=Envelope)
def portal_login(
    body: PortalLoginRequest,
    request: Request,
    service: PortalAuthService = Depends(get_portal_service),
) -> Envelope:
    """Staged portal login.

    Raises:
        NotFound (404): no account for (email, firebase_uid)
        ProfileIncomplete (403): profile not completed
        Forbidden (403): role flag for portal_type not set
        AccountNotActive (403): account not active
    """
    return _login(service, request, body, body.portal_type, "Login successful")


@router.post("/admin/login", response_model=Envelope)
def admin_login(
    body: FixedPortalLoginRequest,
    request: Request,
    service: PortalAuthService = Depends(get_portal_service),
) -> Envelope:
    portal = PortalType.ADMIN.value
    return _login(service, request, body, portal, SUCCESS_MESSAGES[portal])


@router.post("/staff/login", response_model=Envelope)
def staff_login(
    body: FixedPortalLoginRequest,
    request: Request,
    service: PortalAuthService = Depends(get_portal_service),
) -> Envelope:
    portal = PortalType.STAFF.value
    return _login(service, request, body, portal, SUCCESS_MESSAGES[portal])


@router.post("/operator/login", response_model=Envelope)
def operator_login(
    body: FixedPortalLoginRequest,
    request: Request,
    service: PortalAuthService = Depends(get_portal_service),
) -> Envelope:
    portal = PortalType.OPERATOR.value
    return _login(service, request, body, portal, SUCCESS_MESSAGES[portal])


@router.post("/logout", response_model=Envelope)
def portal_logout(
    body: PortalLogoutRequest,
    request: Request,
    service: PortalAuthService = Depends(get_portal_service),
) -> Envelope:
    service.logout(body.user_refid, body.portal_type, client_context(request))
    return Envelope(success=True, message="Logout successful")


@router.post("/verify-session", response_model=Envelope)
def verify_session(
    body: VerifySessionRequest,
    service: PortalAuthService = Depends(get_portal_service),
) -> Envelope:
    data = service.verify_session(body.user_refid, body.portal_type)
    return Envelope(success=True, message="Session valid", data=data)
