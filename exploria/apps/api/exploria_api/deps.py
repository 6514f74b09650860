"""FastAPI dependencies shared by the routers."""

from typing import Any, Optional

from fastapi import Request

from exploria_api.audit.journal import AuthJournal, ClientContext
from exploria_api.config.env import id_token_required
from exploria_api.db.session import SessionLocal
from exploria_api.identity.firebase_client import FirebaseIdentityClient


def get_journal() -> AuthJournal:
    """Journal writing through its own sessions (never the request session)."""
    return AuthJournal(SessionLocal)


def get_identity_client(request: Request) -> Optional[FirebaseIdentityClient]:
    """Identity client built at startup, None when Firebase is not configured."""
    return getattr(request.app.state, "identity_client", None)


def get_require_id_token() -> bool:
    return id_token_required()


def client_ip(request: Request) -> Optional[str]:
    """Caller IP: first X-Forwarded-For hop, else the socket peer."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else None


def client_context(
    request: Request,
    device_info: Optional[Any] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> ClientContext:
    """Build client metadata; values reported in the body take precedence."""
    device = device_info.model_dump(exclude_none=True) if device_info is not None else {}
    return ClientContext(
        ip_address=ip_address or client_ip(request),
        user_agent=user_agent or request.headers.get("User-Agent"),
        device_info=device,
    )
