"""POST /portal/verify-session and POST /portal/logout."""

import pytest

from exploria_api.db.models import Account


def _verify(client, ref_id, portal_type="admin"):
    return client.post("/portal/verify-session", json={"user_refid": ref_id, "portal_type": portal_type})


class TestVerifySession:
    def test_valid_session(self, client, make_account):
        account = make_account(is_admin=True)

        response = _verify(client, account.user_refid)

        assert response.status_code == 200
        assert response.json()["data"] == {
            "user_refid": account.user_refid,
            "email": account.email,
            "display_name": None,
            "portal_type": "admin",
        }

    @pytest.mark.parametrize(
        "fields,message",
        [
            ({"confirmed": False, "is_admin": True}, "Session invalid: Account not confirmed"),
            (
                {"confirmed": True},
                "Session invalid: Access denied. Administrator privileges required.",
            ),
            (
                {"is_admin": True, "account_status": "suspended"},
                "Session invalid: Account is suspended. Please contact support.",
            ),
        ],
    )
    def test_failed_gate_is_session_invalid(self, client, make_account, fields, message):
        account = make_account(**fields)

        response = _verify(client, account.user_refid)

        assert response.status_code == 401
        assert response.json()["message"] == message

    def test_unknown_account(self, client):
        response = _verify(client, "USR-01012024000000-AAA")

        assert response.status_code == 401
        assert response.json()["message"] == "Session invalid: User not found"

    def test_verify_leaves_bookkeeping_and_journal_untouched(self, client, make_account, db_session, journal_rows):
        account = make_account(is_staff=True)

        _verify(client, account.user_refid, "staff")

        db_session.expire_all()
        assert db_session.get(Account, account.user_refid).last_login_at is None
        assert journal_rows() == []


class TestPortalLogout:
    def test_logout_with_portal(self, client, make_account, journal_rows):
        account = make_account(is_operator=True)

        response = client.post(
            "/portal/logout",
            json={"user_refid": account.user_refid, "portal_type": "operator"},
        )

        assert response.status_code == 200
        rows = journal_rows("logout")
        assert len(rows) == 1
        assert rows[0].portal_type == "operator"
        assert rows[0].auth_status == "success"

    def test_logout_without_portal_is_unknown(self, client, make_account, journal_rows):
        account = make_account()

        client.post("/portal/logout", json={"user_refid": account.user_refid})

        assert journal_rows("logout")[0].portal_type == "unknown"

    def test_logout_unknown_account(self, client):
        response = client.post("/portal/logout", json={"user_refid": "USR-01012024000000-AAA"})

        assert response.status_code == 404
