"""
Authentication and session tests.

Verifies:
- Login returns a token and rejects bad credentials
- Every catalog/ledger route requires a valid token
- Logout, idle timeout, absolute expiry and deactivation all end a session
- Password strength rules
"""

from datetime import timedelta

import pytest

from kantin.extensions import db
from kantin.models import SessionToken, User
from kantin.services import auth_service, session_service
from kantin.services.auth_service import PasswordValidationError
from kantin.time_utils import utcnow

CASHIER_PASSWORD = "Kasir123!"


def get_auth_token(client, username, password):
    resp = client.post("/api/auth/login", json={"username": username, "password": password})
    return resp.get_json()["token"] if resp.status_code == 200 else None


def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


def _session_for(token: str) -> SessionToken:
    return (
        db.session.query(SessionToken)
        .filter_by(token_hash=session_service.hash_token(token))
        .populate_existing()
        .one()
    )


class TestLogin:
    def test_success(self, client, cashier):
        resp = client.post("/api/auth/login", json={"username": "kasir", "password": CASHIER_PASSWORD})
        assert resp.status_code == 200
        body = resp.get_json()
        assert len(body["token"]) == 64
        assert body["user"]["display_name"] == "Bu Sari"
        assert "password_hash" not in body["user"]

        user = db.session.get(User, cashier.id, populate_existing=True)
        assert user.last_login_at is not None

    def test_token_is_stored_hashed(self, client, cashier):
        token = get_auth_token(client, "kasir", CASHIER_PASSWORD)
        session = _session_for(token)
        assert session.token_hash != token
        assert session.expires_at - session.created_at == timedelta(hours=24)

    @pytest.mark.parametrize("password", ["salah", "Kasir123?"])
    def test_wrong_password(self, client, cashier, password):
        resp = client.post("/api/auth/login", json={"username": "kasir", "password": password})
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Username atau password salah"

    def test_unknown_user(self, client, db_session):
        resp = client.post("/api/auth/login", json={"username": "hantu", "password": "Hantu123!"})
        assert resp.status_code == 401

    def test_missing_fields(self, client, db_session):
        resp = client.post("/api/auth/login", json={"username": "kasir"})
        assert resp.status_code == 400

    def test_non_object_body(self, client, db_session):
        resp = client.post("/api/auth/login", json=["kasir", "Kasir123!"])
        assert resp.status_code == 400

    def test_deactivated_user_cannot_login(self, client, cashier):
        auth_service.set_active("kasir", False)
        assert get_auth_token(client, "kasir", CASHIER_PASSWORD) is None


class TestProtectedRoutes:
    @pytest.mark.parametrize("method,path", [
        ("get", "/api/products"),
        ("post", "/api/barcode"),
        ("post", "/api/transactions"),
        ("get", "/api/reports/summary"),
        ("get", "/api/settings/receipt"),
    ])
    def test_requires_token(self, client, db_session, method, path):
        resp = getattr(client, method)(path)
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Authentication required"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/products", headers=auth_headers("not-a-token"))
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Invalid or expired token"

    def test_health_is_public(self, client, db_session):
        assert client.get("/health").status_code == 200

    def test_valid_token(self, client, headers):
        assert client.get("/api/products", headers=headers).status_code == 200


class TestSessionLifecycle:
    def test_logout_revokes(self, client, cashier):
        token = get_auth_token(client, "kasir", CASHIER_PASSWORD)
        resp = client.post("/api/auth/logout", headers=auth_headers(token))
        assert resp.status_code == 200

        assert client.get("/api/products", headers=auth_headers(token)).status_code == 401
        assert client.post("/api/auth/logout", headers=auth_headers(token)).status_code == 401

    def test_validate(self, client, cashier):
        token = get_auth_token(client, "kasir", CASHIER_PASSWORD)
        resp = client.post("/api/auth/validate", headers=auth_headers(token))
        assert resp.status_code == 200
        assert resp.get_json()["user"]["username"] == "kasir"

        assert client.post("/api/auth/validate").status_code == 401

    def test_idle_timeout(self, client, cashier):
        token = get_auth_token(client, "kasir", CASHIER_PASSWORD)
        session = _session_for(token)
        session.last_used_at = utcnow() - timedelta(hours=3)
        db.session.commit()

        assert client.get("/api/products", headers=auth_headers(token)).status_code == 401
        session = _session_for(token)
        assert session.is_revoked is True
        assert session.revoked_reason == "Idle timeout"

    def test_absolute_expiry(self, client, cashier):
        token = get_auth_token(client, "kasir", CASHIER_PASSWORD)
        session = _session_for(token)
        session.expires_at = utcnow() - timedelta(minutes=1)
        db.session.commit()

        assert session_service.validate_session(token) is None

    def test_deactivation_ends_sessions(self, client, cashier):
        token = get_auth_token(client, "kasir", CASHIER_PASSWORD)
        auth_service.set_active("kasir", False)

        assert client.get("/api/products", headers=auth_headers(token)).status_code == 401
        assert _session_for(token).revoked_reason == "User account deactivated"

    def test_revoke_all(self, client, cashier):
        first = get_auth_token(client, "kasir", CASHIER_PASSWORD)
        second = get_auth_token(client, "kasir", CASHIER_PASSWORD)
        assert session_service.revoke_all_user_sessions(cashier.id) == 2
        assert session_service.validate_session(first) is None
        assert session_service.validate_session(second) is None

    def test_sale_records_cashier(self, client, headers, cashier, products):
        resp = client.post("/api/transactions", json={"barcode_id": "BRK001", "jumlah": 1}, headers=headers)
        assert resp.status_code == 201
        assert resp.get_json()["created_by_user_id"] == cashier.id


class TestAccounts:
    @pytest.mark.parametrize("password", [
        "Ab1!",
        "abcdefg1!",
        "ABCDEFG1!",
        "Abcdefgh!",
        "Abcdefgh1",
    ])
    def test_weak_passwords(self, app, password):
        with pytest.raises(PasswordValidationError):
            auth_service.validate_password_strength(password)

    def test_duplicate_username(self, cashier):
        with pytest.raises(ValueError):
            auth_service.create_user("kasir", "Lain1234!")

    def test_blank_username(self, db_session):
        with pytest.raises(ValueError):
            auth_service.create_user("  ", "Kasir123!")

    def test_password_is_hashed(self, cashier):
        assert cashier.password_hash.startswith("$2")
        assert auth_service.verify_password(CASHIER_PASSWORD, cashier.password_hash)
        assert not auth_service.verify_password(CASHIER_PASSWORD, "not-a-bcrypt-hash")
