"""Registration and profile completion (POST /auth/register, /auth/complete-profile)."""

from datetime import date, timedelta

import pytest
from sqlalchemy import select

from exploria_api.accounts.errors import Conflict
from exploria_api.accounts.store import AccountStore
from exploria_api.db.models import Account

REFID_PATTERN = r"^USR-\d{14}-[A-Z0-9]{3}$"


def _register(client, uid="u1", email="a@x.com", **extra):
    return client.post("/auth/register", json={"firebase_uid": uid, "email": email, **extra})


def _complete(client, ref_id, **overrides):
    body = {
        "user_refid": ref_id,
        "firstname": "A",
        "lastname": "B",
        "birthday": "1990-01-01",
        "gender": "other",
    }
    body.update(overrides)
    return client.post("/auth/complete-profile", json=body)


class TestRegister:
    def test_register_creates_unconfirmed_account(self, client, db_session):
        response = _register(client, display_name="Ann", device_info={"device_type": "ios"})

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        data = body["data"]
        assert data["confirmed"] is False
        assert data["requires_profile_completion"] is True
        assert data["email"] == "a@x.com"
        assert data["display_name"] == "Ann"
        assert len(data["referral_code"]) == 8
        assert data["user_refid"].startswith("USR-")

        account = db_session.get(Account, data["user_refid"])
        assert account.firebase_uid == "u1"
        assert not (account.is_admin or account.is_staff or account.is_operator)
        assert account.account_status == "active"
        assert account.registration_source == "ios"

    def test_register_twice_same_uid_returns_conflict_with_original_refid(self, client, db_session):
        first = _register(client)
        second = _register(client)

        assert first.status_code == 201
        assert second.status_code == 409
        body = second.json()
        assert body["success"] is False
        assert body["data"]["user_refid"] == first.json()["data"]["user_refid"]
        assert body["data"]["confirmed"] is False
        assert len(db_session.scalars(select(Account)).all()) == 1

    def test_register_same_email_different_uid_conflicts(self, client, db_session):
        first = _register(client, uid="u1")
        second = _register(client, uid="u2")

        assert second.status_code == 409
        assert second.json()["message"] == "Email already registered"
        assert second.json()["data"]["user_refid"] == first.json()["data"]["user_refid"]
        assert len(db_session.scalars(select(Account)).all()) == 1

    def test_email_uniqueness_ignores_case(self, client, db_session):
        first = _register(client, uid="u1", email="ann@x.com")
        second = _register(client, uid="u2", email="Ann@X.com")

        assert second.status_code == 409
        assert second.json()["message"] == "Email already registered"
        assert second.json()["data"]["user_refid"] == first.json()["data"]["user_refid"]
        assert db_session.scalars(select(Account.email)).all() == ["ann@x.com"]

    def test_email_is_stored_lowercased(self, client):
        response = _register(client, email="Mixed.Case@Exploria.id")

        assert response.status_code == 201
        assert response.json()["data"]["email"] == "mixed.case@exploria.id"

    def test_register_journals_login_event(self, client, journal_rows):
        response = _register(client, auth_method="google")

        rows = journal_rows("login")
        assert len(rows) == 1
        assert rows[0].auth_status == "success"
        assert rows[0].is_new_device is True
        assert rows[0].auth_method == "google"
        assert rows[0].user_refid == response.json()["data"]["user_refid"]

    def test_register_conflict_is_journaled_as_failed(self, client, journal_rows):
        _register(client)
        _register(client)

        rows = journal_rows("login")
        assert [row.auth_status for row in rows] == ["success", "failed"]
        assert rows[1].failure_reason == "conflict"

    def test_register_rejects_invalid_email(self, client):
        response = _register(client, email="not-an-email")

        assert response.status_code == 422
        assert "email" in response.json()["errors"]


class TestInsertRace:
    """The unique constraint is the arbiter when the pre-check is bypassed."""

    def test_insert_collision_on_uid_maps_to_conflict(self, db_session, make_account):
        winner = make_account(email="a@x.com", firebase_uid="u1", confirmed=False)
        store = AccountStore(db_session)

        with pytest.raises(Conflict) as exc_info:
            store.create("u1", "other@x.com")

        assert exc_info.value.data["user_refid"] == winner.user_refid
        assert len(db_session.scalars(select(Account)).all()) == 1

    def test_insert_collision_on_email_maps_to_conflict(self, db_session, make_account):
        winner = make_account(email="a@x.com", firebase_uid="u1")
        store = AccountStore(db_session)

        with pytest.raises(Conflict) as exc_info:
            store.create("u2", "a@x.com")

        assert exc_info.value.data == {"user_refid": winner.user_refid}


class TestCompleteProfile:
    def test_complete_profile_confirms_account(self, client):
        ref_id = _register(client).json()["data"]["user_refid"]

        response = _complete(client, ref_id)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["confirmed"] is True
        assert data["display_name"] == "A B"
        assert data["birthday"] == "1990-01-01"

    def test_defaults_language_and_currency(self, client, db_session):
        ref_id = _register(client).json()["data"]["user_refid"]
        _complete(client, ref_id)

        account = db_session.get(Account, ref_id)
        assert account.preferred_language == "en"
        assert account.preferred_currency == "USD"

    def test_second_completion_is_rejected_and_fields_unchanged(self, client, db_session):
        ref_id = _register(client).json()["data"]["user_refid"]
        _complete(client, ref_id)

        response = _complete(client, ref_id, firstname="Changed")

        assert response.status_code == 400
        assert response.json()["message"] == "User profile is already confirmed"
        account = db_session.get(Account, ref_id)
        assert account.firstname == "A"
        assert account.display_name == "A B"

    def test_unknown_refid_is_not_found(self, client):
        response = _complete(client, "USR-01012024000000-ZZZ")

        assert response.status_code == 404

    def test_guarded_update_loses_to_earlier_confirmation(self, db_session, make_account):
        account = make_account(confirmed=True)
        store = AccountStore(db_session)

        assert store.complete_profile(account.user_refid, {"firstname": "Late"}) is False
        db_session.refresh(account)
        assert account.firstname == "Ada"

    @pytest.mark.parametrize(
        "overrides,field",
        [
            ({"birthday": (date.today() + timedelta(days=1)).isoformat()}, "birthday"),
            ({"birthday": date.today().isoformat()}, "birthday"),
            ({"gender": "unknown"}, "gender"),
            ({"firstname": "x" * 101}, "firstname"),
            ({"lastname": ""}, "lastname"),
            ({"preferred_currency": "EURO"}, "preferred_currency"),
        ],
    )
    def test_validation_errors(self, client, overrides, field):
        ref_id = _register(client).json()["data"]["user_refid"]

        response = _complete(client, ref_id, **overrides)

        assert response.status_code == 422
        body = response.json()
        assert body["success"] is False
        assert field in body["errors"]


class TestCheckEmail:
    def test_available_email(self, client):
        response = client.post("/auth/check-email", json={"email": "new@x.com"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Email is available"
        assert body["data"] == {"exists": False}

    def test_existing_email(self, client):
        ref_id = _register(client).json()["data"]["user_refid"]

        response = client.post("/auth/check-email", json={"email": "a@x.com"})

        body = response.json()
        assert response.status_code == 200
        assert body["success"] is False
        assert body["data"] == {"exists": True, "user_refid": ref_id, "confirmed": False}
