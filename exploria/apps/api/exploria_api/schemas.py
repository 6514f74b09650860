"""Pydantic schemas for API requests/responses."""

from datetime import date
from typing import Annotated, Any, Literal, Optional

from pydantic import AfterValidator, BaseModel, EmailStr, Field, field_validator

AuthMethod = Literal["email_password", "google", "facebook", "apple", "phone"]
Gender = Literal["male", "female", "other", "prefer_not_to_say"]
PortalTypeName = Literal["admin", "staff", "operator"]

# Mailboxes are case-insensitive; accounts store the lowercased address
AccountEmail = Annotated[EmailStr, AfterValidator(str.lower)]


# ============================================================================
# Envelope
# ============================================================================


class Envelope(BaseModel):
    """Standard response body for every endpoint."""

    success: bool
    message: str
    data: Optional[dict[str, Any]] = None
    errors: Optional[dict[str, list[str]]] = None


# ============================================================================
# Shared
# ============================================================================


class DeviceInfo(BaseModel):
    """Client-reported device metadata (all optional)."""

    device_type: Optional[str] = Field(default=None, max_length=50)
    device_model: Optional[str] = Field(default=None, max_length=100)
    device_name: Optional[str] = Field(default=None, max_length=100)
    os_name: Optional[str] = Field(default=None, max_length=50)
    os_version: Optional[str] = Field(default=None, max_length=50)
    browser_name: Optional[str] = Field(default=None, max_length=50)
    browser_version: Optional[str] = Field(default=None, max_length=50)
    app_version: Optional[str] = Field(default=None, max_length=50)


# ============================================================================
# /auth/*
# ============================================================================


class CheckEmailRequest(BaseModel):
    email: AccountEmail


class RegisterRequest(BaseModel):
    """Request body for POST /auth/register."""

    firebase_uid: str = Field(..., min_length=1, max_length=128)
    email: AccountEmail
    display_name: Optional[str] = Field(default=None, max_length=200)
    profile_photo_url: Optional[str] = Field(default=None, max_length=2048)
    email_verified: bool = False
    auth_method: AuthMethod = "email_password"
    device_info: Optional[DeviceInfo] = None
    id_token: Optional[str] = Field(default=None, description="Firebase ID token")


class CompleteProfileRequest(BaseModel):
    """Request body for POST /auth/complete-profile."""

    user_refid: str = Field(..., min_length=1)
    firstname: str = Field(..., min_length=1, max_length=100)
    lastname: str = Field(..., min_length=1, max_length=100)
    birthday: date
    gender: Gender
    mobile_number: Optional[str] = Field(default=None, max_length=20)
    mobile_country_code: Optional[str] = Field(default=None, max_length=5)
    nationality: Optional[str] = Field(default=None, max_length=100)
    home_country: Optional[str] = Field(default=None, max_length=100)
    home_city: Optional[str] = Field(default=None, max_length=100)
    preferred_language: Optional[str] = Field(default=None, max_length=10)
    preferred_currency: Optional[str] = Field(default=None, max_length=3)

    @field_validator("birthday")
    @classmethod
    def birthday_in_past(cls, value: date) -> date:
        if value >= date.today():
            raise ValueError("birthday must be a date before today")
        return value


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""

    firebase_uid: str = Field(..., min_length=1, max_length=128)
    email: AccountEmail
    auth_method: AuthMethod = "email_password"
    device_info: Optional[DeviceInfo] = None
    id_token: Optional[str] = Field(default=None, description="Firebase ID token")


class UpdateLocationRequest(BaseModel):
    """Request body for POST /auth/update-location. gps_live is [longitude, latitude]."""

    user_refid: str = Field(..., min_length=1)
    gps_live: list[float] = Field(..., min_length=2, max_length=2)

    @field_validator("gps_live")
    @classmethod
    def coordinates_in_range(cls, value: list[float]) -> list[float]:
        longitude, latitude = value
        if not -180.0 <= longitude <= 180.0:
            raise ValueError("longitude must be between -180 and 180")
        if not -90.0 <= latitude <= 90.0:
            raise ValueError("latitude must be between -90 and 90")
        return value


class UserLogoutRequest(BaseModel):
    user_refid: str = Field(..., min_length=1)


# ============================================================================
# /portal/*
# ============================================================================


class PortalLoginRequest(BaseModel):
    """Request body for POST /portal/login."""

    email: AccountEmail
    firebase_uid: str = Field(..., min_length=1, max_length=128)
    portal_type: PortalTypeName
    device_info: Optional[DeviceInfo] = None
    ip_address: Optional[str] = Field(default=None, max_length=45)
    user_agent: Optional[str] = Field(default=None, max_length=512)
    id_token: Optional[str] = Field(default=None, description="Firebase ID token")


class FixedPortalLoginRequest(BaseModel):
    """Request body for POST /portal/{admin,staff,operator}/login."""

    email: AccountEmail
    firebase_uid: str = Field(..., min_length=1, max_length=128)
    device_info: Optional[DeviceInfo] = None
    ip_address: Optional[str] = Field(default=None, max_length=45)
    user_agent: Optional[str] = Field(default=None, max_length=512)
    id_token: Optional[str] = Field(default=None, description="Firebase ID token")


class PortalLogoutRequest(BaseModel):
    user_refid: str = Field(..., min_length=1)
    portal_type: Optional[PortalTypeName] = None


class VerifySessionRequest(BaseModel):
    user_refid: str = Field(..., min_length=1)
    portal_type: PortalTypeName


# ============================================================================
# GET /health
# ============================================================================


class HealthResponse(BaseModel):
    status: str
    version: str
    services: dict[str, str]
