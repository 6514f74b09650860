"""Reference id and referral code formats."""

import re
from datetime import datetime, timezone

from exploria_api.accounts.refids import (
    generate_auth_refid,
    generate_referral_code,
    generate_user_refid,
)


def test_user_refid_format():
    now = datetime(2024, 3, 7, 14, 5, 9, tzinfo=timezone.utc)

    refid = generate_user_refid(now)

    assert re.fullmatch(r"USR-07032024140509-[A-Z0-9]{3}", refid)


def test_auth_refid_format():
    assert re.fullmatch(r"AUT-\d{14}-[A-Z0-9]{3}", generate_auth_refid())


def test_referral_code_format():
    codes = {generate_referral_code() for _ in range(50)}

    assert all(re.fullmatch(r"[A-Z0-9]{8}", code) for code in codes)
    assert len(codes) > 1
