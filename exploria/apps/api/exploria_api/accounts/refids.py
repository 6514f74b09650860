"""Reference id and referral code generation.

Formats:
- user_refid:    USR-DDMMYYYYHHMMSS-XXX
- auth_refid:    AUT-DDMMYYYYHHMMSS-XXX
- referral code: 8 chars of [A-Z0-9]

Uniqueness is enforced by the store's unique constraints; these helpers only
make collisions unlikely.
"""

import secrets
import string
from datetime import datetime, timezone
from typing import Optional

_ALPHABET = string.ascii_uppercase + string.digits


def _random_suffix(length: int) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def _timestamp(now: Optional[datetime] = None) -> str:
    return (now or datetime.now(timezone.utc)).strftime("%d%m%Y%H%M%S")


def generate_user_refid(now: Optional[datetime] = None) -> str:
    """Generate an account reference id (USR-DDMMYYYYHHMMSS-XXX)."""
    return f"USR-{_timestamp(now)}-{_random_suffix(3)}"


def generate_auth_refid(now: Optional[datetime] = None) -> str:
    """Generate a journal entry reference id (AUT-DDMMYYYYHHMMSS-XXX)."""
    return f"AUT-{_timestamp(now)}-{_random_suffix(3)}"


def generate_referral_code() -> str:
    return _random_suffix(8)
