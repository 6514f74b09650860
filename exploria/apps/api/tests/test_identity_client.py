"""Firebase identity client and ID token enforcement."""

from unittest.mock import MagicMock, patch

import pytest
from firebase_admin import auth as firebase_auth

from exploria_api.accounts.errors import IdentityRejected
from exploria_api.deps import get_require_id_token
from exploria_api.identity.firebase_client import (
    FirebaseIdentityClient,
    VerifiedIdentity,
    build_identity_client,
    confirm_identity,
)
from exploria_api.main import app


def _client_returning(uid="u1", email="a@x.com") -> MagicMock:
    client = MagicMock(spec=FirebaseIdentityClient)
    client.verify.return_value = VerifiedIdentity(uid=uid, email=email)
    return client


class TestFirebaseIdentityClient:
    def test_verify_returns_identity(self):
        app_handle = object()
        with patch(
            "exploria_api.identity.firebase_client.firebase_auth.verify_id_token",
            return_value={"uid": "u1", "email": "a@x.com", "email_verified": True},
        ) as verify:
            identity = FirebaseIdentityClient(app_handle).verify("token-1")

        verify.assert_called_once_with("token-1", app=app_handle)
        assert identity == VerifiedIdentity(uid="u1", email="a@x.com", email_verified=True)

    def test_invalid_token_is_rejected(self):
        with patch(
            "exploria_api.identity.firebase_client.firebase_auth.verify_id_token",
            side_effect=firebase_auth.InvalidIdTokenError("bad token"),
        ):
            with pytest.raises(IdentityRejected):
                FirebaseIdentityClient(object()).verify("bad")

    def test_malformed_token_value_error_is_rejected(self):
        with patch(
            "exploria_api.identity.firebase_client.firebase_auth.verify_id_token",
            side_effect=ValueError("Illegal ID token provided"),
        ):
            with pytest.raises(IdentityRejected):
                FirebaseIdentityClient(object()).verify("")

    def test_from_config_uses_certificate_and_named_app(self):
        with patch("exploria_api.identity.firebase_client.credentials.Certificate") as certificate, patch(
            "exploria_api.identity.firebase_client.firebase_admin.initialize_app"
        ) as initialize_app:
            FirebaseIdentityClient.from_config("exploria-dev", "/secrets/sa.json")

        certificate.assert_called_once_with("/secrets/sa.json")
        initialize_app.assert_called_once_with(
            certificate.return_value,
            options={"projectId": "exploria-dev"},
            name="exploria-auth",
        )

    def test_build_returns_none_without_config(self, monkeypatch):
        monkeypatch.delenv("FIREBASE_PROJECT_ID", raising=False)
        monkeypatch.delenv("FIREBASE_CREDENTIALS_FILE", raising=False)
        monkeypatch.delenv("GOOGLE_APPLICATION_CREDENTIALS", raising=False)

        assert build_identity_client() is None


class TestConfirmIdentity:
    def test_optional_without_token_trusts_body(self):
        assert confirm_identity(None, None, "u1", "a@x.com") is None

    def test_required_without_token_is_rejected(self):
        with pytest.raises(IdentityRejected):
            confirm_identity(_client_returning(), None, "u1", required=True)

    def test_required_without_client_is_rejected(self):
        with pytest.raises(IdentityRejected):
            confirm_identity(None, "token", "u1", required=True)

    def test_uid_mismatch_is_rejected(self):
        with pytest.raises(IdentityRejected):
            confirm_identity(_client_returning(uid="other"), "token", "u1")

    def test_email_match_is_case_insensitive(self):
        identity = confirm_identity(_client_returning(email="A@X.com"), "token", "u1", "a@x.com")

        assert identity.uid == "u1"


class TestEndpointsWithIdentityClient:
    def test_register_requires_token_when_enforced(self, client):
        app.dependency_overrides[get_require_id_token] = lambda: True
        app.state.identity_client = _client_returning()

        response = client.post("/auth/register", json={"firebase_uid": "u1", "email": "a@x.com"})

        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_register_with_matching_token(self, client):
        app.dependency_overrides[get_require_id_token] = lambda: True
        app.state.identity_client = _client_returning()

        response = client.post(
            "/auth/register",
            json={"firebase_uid": "u1", "email": "a@x.com", "id_token": "token-1"},
        )

        assert response.status_code == 201
        app.state.identity_client.verify.assert_called_once_with("token-1")

    def test_supplied_token_is_verified_even_when_optional(self, client, make_account, journal_rows):
        account = make_account(is_admin=True)
        app.state.identity_client = _client_returning(uid="someone-else")

        response = client.post(
            "/portal/login",
            json={
                "email": account.email,
                "firebase_uid": account.firebase_uid,
                "portal_type": "admin",
                "id_token": "token-1",
            },
        )

        assert response.status_code == 401
        rows = journal_rows("login")
        assert len(rows) == 1
        assert rows[0].failure_reason == "identity_rejected"
