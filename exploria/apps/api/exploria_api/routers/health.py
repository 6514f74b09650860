"""Health check endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import text
from sqlalchemy.orm import Session

from exploria_api.db.session import get_db
from exploria_api.deps import get_identity_client
from exploria_api.identity.firebase_client import FirebaseIdentityClient
from exploria_api.schemas import HealthResponse

router = APIRouter()
logger = logging.getLogger(__name__)

API_VERSION = "0.1.0"


def check_database(db: Session) -> str:
    """Check database connectivity.

    Returns:
        str: "up" if healthy, "down" otherwise (detail is logged only)
    """
    try:
        db.execute(text("SELECT 1"))
        return "up"
    except Exception as e:
        logger.error("health.database_down", extra={"error_type": type(e).__name__, "error": str(e)})
        return "down"


def check_identity(client: Optional[FirebaseIdentityClient]) -> str:
    return "configured" if client is not None else "not_configured"


@router.get("/health", response_model=HealthResponse)
def health_check(
    db: Session = Depends(get_db),
    identity_client: Optional[FirebaseIdentityClient] = Depends(get_identity_client),
) -> HealthResponse:
    """
    Health check endpoint.

    Always returns 200 OK (use /readyz for dependency checks).
    """
    return HealthResponse(
        status="healthy",
        version=API_VERSION,
        services={
            "api": "up",
            "database": check_database(db),
            "identity": check_identity(identity_client),
        },
    )


@router.get("/readyz", response_model=HealthResponse)
def readiness_check(response: Response, db: Session = Depends(get_db)) -> HealthResponse:
    """
    Readiness check endpoint.

    Returns 503 while the database is unreachable.
    """
    services = {"api": "up", "database": check_database(db)}

    if services["database"] != "up":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(status="not_ready", version=API_VERSION, services=services)

    return HealthResponse(status="ready", version=API_VERSION, services=services)
