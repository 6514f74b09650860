"""End-user auth endpoints.

Endpoints:
- POST /auth/check-email: Is the email already registered?
- POST /auth/register: Link a Firebase identity to a new account (201)
- POST /auth/complete-profile: One-shot profile completion
- POST /auth/login: End-user login (no role gate)
- POST /auth/update-location: Store live location
- POST /auth/logout: Journal an end-user logout
- GET /auth/profile/{ref_id}: Full profile read

Business failures are raised as AccountFlowError and rendered by the
app-level handler in main.py.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from exploria_api.accounts.registration import RegistrationService
from exploria_api.accounts.user_session import UserSessionService
from exploria_api.audit.journal import AuthJournal
from exploria_api.db.session import get_db
from exploria_api.deps import client_context, get_identity_client, get_journal, get_require_id_token
from exploria_api.identity.firebase_client import FirebaseIdentityClient
from exploria_api.schemas import (
    CheckEmailRequest,
    CompleteProfileRequest,
    Envelope,
    LoginRequest,
    RegisterRequest,
    UpdateLocationRequest,
    UserLogoutRequest,
)

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


def get_registration_service(
    db: Session = Depends(get_db),
    journal: AuthJournal = Depends(get_journal),
    identity_client: Optional[FirebaseIdentityClient] = Depends(get_identity_client),
    require_id_token: bool = Depends(get_require_id_token),
) -> RegistrationService:
    return RegistrationService(db, journal, identity_client, require_id_token)


def get_user_session_service(
    db: Session = Depends(get_db),
    journal: AuthJournal = Depends(get_journal),
    identity_client: Optional[FirebaseIdentityClient] = Depends(get_identity_client),
    require_id_token: bool = Depends(get_require_id_token),
) -> UserSessionService:
    return UserSessionService(db, journal, identity_client, require_id_token)


@router.post("/check-email", response_model=Envelope)
def check_email(
    body: CheckEmailRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> Envelope:
    """Report whether an email is already registered.

    An existing email is reported with success=false (HTTP 200) and the owning
    user_refid, so the client can route to login instead of registration.
    """
    result = service.check_email(body.email)
    if result["exists"]:
        return Envelope(success=False, message="Email already exists in our system", data=result)
    return Envelope(success=True, message="Email is available", data=result)


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=Envelope)
def register(
    body: RegisterRequest,
    request: Request,
    service: RegistrationService = Depends(get_registration_service),
) -> Envelope:
    """Register a Firebase identity.

    Raises:
        Conflict (409): firebase_uid or email already registered
        IdentityRejected (401): ID token required or mismatched
    """
    data = service.register(
        body.firebase_uid,
        body.email,
        client_context(request, body.device_info),
        display_name=body.display_name,
        profile_photo_url=body.profile_photo_url,
        email_verified=body.email_verified,
        auth_method=body.auth_method,
        id_token=body.id_token,
    )
    return Envelope(
        success=True,
        message="User registered successfully. Please complete your profile.",
        data=data,
    )


@router.post("/complete-profile", response_model=Envelope)
def complete_profile(
    body: CompleteProfileRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> Envelope:
    data = service.complete_profile(**body.model_dump())
    return Envelope(success=True, message="Profile completed successfully", data=data)


@router.post("/login", response_model=Envelope)
def login(
    body: LoginRequest,
    request: Request,
    service: UserSessionService = Depends(get_user_session_service),
) -> Envelope:
    data = service.login(
        body.firebase_uid,
        body.email,
        client_context(request, body.device_info),
        auth_method=body.auth_method,
        id_token=body.id_token,
    )
    return Envelope(success=True, message="Login successful", data=data)


@router.post("/update-location", response_model=Envelope)
def update_location(
    body: UpdateLocationRequest,
    service: UserSessionService = Depends(get_user_session_service),
) -> Envelope:
    longitude, latitude = body.gps_live
    service.update_location(body.user_refid, longitude, latitude)
    return Envelope(success=True, message="Location updated successfully")


@router.post("/logout", response_model=Envelope)
def logout(
    body: UserLogoutRequest,
    request: Request,
    service: UserSessionService = Depends(get_user_session_service),
) -> Envelope:
    service.logout(body.user_refid, client_context(request))
    return Envelope(success=True, message="Logout successful")


@router.get("/profile/{ref_id}", response_model=Envelope)
def get_profile(
    ref_id: str,
    service: UserSessionService = Depends(get_user_session_service),
) -> Envelope:
    data = service.get_profile(ref_id)
    return Envelope(success=True, message="Profile retrieved successfully", data=data)
