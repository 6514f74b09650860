"""Environment variable resolution utilities.

Canonical env names + fail-fast validation for production.
"""

import os
from typing import Optional

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in _TRUTHY


def get_exploria_env() -> str:
    """Get Exploria environment name.

    Priority:
    1. EXPLORIA_ENV (canonical)
    2. APP_ENV (legacy deploy scripts)
    3. Default: "local"

    Returns:
        Environment name (lowercase)
    """
    return (
        os.getenv("EXPLORIA_ENV")
        or os.getenv("APP_ENV")
        or "local"
    ).lower()


def is_production_env() -> bool:
    """Return True when running in prod/production."""
    return get_exploria_env() in {"prod", "production"}


def get_database_url() -> str:
    """Get runtime database URL.

    Production: DATABASE_URL is mandatory (fail-fast).
    Development/CI: falls back to a local SQLite file.

    Raises:
        RuntimeError: If DATABASE_URL is missing in production
    """
    url = os.getenv("DATABASE_URL")
    if url:
        return url

    if is_production_env():
        raise RuntimeError(
            "DATABASE_URL environment variable is required in production "
            "(EXPLORIA_ENV=prod/production). "
            "Check deployment configuration and secrets injection."
        )
    return "sqlite:///./exploria_dev.db"


def get_cors_allowed_origins() -> list[str]:
    """Get CORS allowlist for the portal SPAs.

    CORS_ALLOWED_ORIGINS is a comma-separated list. When unset, the local
    Vite dev servers of the administrator/staff/operator portals are allowed.
    """
    raw = os.getenv("CORS_ALLOWED_ORIGINS", "")
    if raw:
        return [origin.strip() for origin in raw.split(",") if origin.strip()]
    return [
        "http://localhost:5173",
        "http://localhost:5174",
        "http://localhost:5175",
        "http://127.0.0.1:5173",
    ]


def json_logs_enabled() -> bool:
    """Structured JSON logs are on unless EXPLORIA_JSON_LOGS=false."""
    return os.getenv("EXPLORIA_JSON_LOGS", "true").strip().lower() != "false"


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()


def get_firebase_project_id() -> Optional[str]:
    """Firebase project ID used to validate ID token audience."""
    return os.getenv("FIREBASE_PROJECT_ID") or None


def get_firebase_credentials_file() -> Optional[str]:
    """Path to a service account JSON file.

    Canonical: FIREBASE_CREDENTIALS_FILE
    Fallback: GOOGLE_APPLICATION_CREDENTIALS (Google SDK default)
    """
    return (
        os.getenv("FIREBASE_CREDENTIALS_FILE")
        or os.getenv("GOOGLE_APPLICATION_CREDENTIALS")
        or None
    )


def id_token_required() -> bool:
    """When true, register/login/portal login must carry a Firebase ID token."""
    return _env_flag("EXPLORIA_REQUIRE_ID_TOKEN")


def validate_startup_config() -> None:
    """Fail-fast configuration check run at application startup.

    Raises:
        RuntimeError: If production requires settings that are missing
    """
    get_database_url()

    if id_token_required() and not (
        get_firebase_credentials_file() or get_firebase_project_id()
    ):
        raise RuntimeError(
            "EXPLORIA_REQUIRE_ID_TOKEN=1 but neither FIREBASE_CREDENTIALS_FILE "
            "nor FIREBASE_PROJECT_ID is set. The identity client cannot be built."
        )
