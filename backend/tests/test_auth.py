"""
Tests for authentication endpoints and password hashing.
"""

from shared.security.auth import parse_demo_token, sign_jwt
from shared.security.password import hash_password, verify_password
from tests.conftest import TEST_PASSWORD, login


class TestPasswordHashing:
    """Test password hashing utilities."""

    def test_hash_password_returns_bcrypt_hash(self):
        assert hash_password("mypassword").startswith("$2b$")

    def test_verify_password_correct(self):
        hashed = hash_password("mypassword")
        assert verify_password("mypassword", hashed) is True

    def test_verify_password_incorrect(self):
        hashed = hash_password("mypassword")
        assert verify_password("wrongpassword", hashed) is False

    def test_plain_text_never_matches(self):
        """Only bcrypt hashes are accepted."""
        assert verify_password("plaintext", "plaintext") is False


class TestDemoTokens:
    def test_demo_token_resolves_role(self):
        ctx = parse_demo_token("demo-token-kitchen-123")
        assert ctx["role"] == "KITCHEN"
        assert ctx["demo"] is True

    def test_unknown_demo_role_is_rejected(self):
        assert parse_demo_token("demo-token-chef") is None


class TestAuthEndpoints:
    """Test authentication API endpoints."""

    def test_login_success(self, client, waiter_user):
        response = client.post("/api/auth/login", json={"username": "waiter", "password": TEST_PASSWORD})
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        data = body["data"]
        assert data["token"]
        assert data["user"]["role"] == "WAITER"
        assert data["redirectPath"] == "/waiter"
        assert "password" not in data["user"]

    def test_login_by_email_is_case_insensitive(self, client, waiter_user):
        response = client.post("/api/auth/login", json={"username": "WAITER@test.com", "password": TEST_PASSWORD})
        assert response.status_code == 200

    def test_login_invalid_password(self, client, waiter_user):
        response = client.post("/api/auth/login", json={"username": "waiter", "password": "wrong"})
        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Invalid username or password"}

    def test_login_inactive_user(self, client, db_session, waiter_user):
        waiter_user.soft_delete()
        db_session.commit()
        response = client.post("/api/auth/login", json={"username": "waiter", "password": TEST_PASSWORD})
        assert response.status_code == 401

    def test_login_validation_error(self, client):
        response = client.post("/api/auth/login", json={"username": "waiter"})
        assert response.status_code == 422
        assert response.json()["success"] is False

    def test_me_authenticated(self, client, waiter_user, waiter_headers):
        response = client.get("/api/auth/me", headers=waiter_headers)
        assert response.status_code == 200
        assert response.json()["data"]["id"] == waiter_user.id

    def test_me_with_demo_token(self, client):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer demo-token-manager"})
        assert response.status_code == 200
        assert response.json()["data"]["role"] == "MANAGER"
        assert response.json()["data"]["demo"] is True

    def test_me_without_token(self, client):
        response = client.get("/api/auth/me")
        assert response.status_code == 401

    def test_me_with_expired_token(self, client, waiter_user):
        token = sign_jwt({"sub": str(waiter_user.id), "role": "WAITER"}, ttl_seconds=-10)
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["error"] == "Token has expired"

    def test_roles_requires_admin(self, client, admin_headers, waiter_headers):
        assert client.get("/api/auth/roles", headers=waiter_headers).status_code == 403
        response = client.get("/api/auth/roles", headers=admin_headers)
        assert response.status_code == 200
        assert {r["role"] for r in response.json()["data"]} == {"ADMIN", "MANAGER", "WAITER", "KITCHEN"}

    def test_validate_token(self, client, waiter_headers):
        token = waiter_headers["Authorization"].split(" ", 1)[1]
        valid = client.post("/api/auth/validate-token", json={"token": token}).json()["data"]
        assert valid["valid"] is True
        assert valid["user"]["role"] == "WAITER"

        invalid = client.post("/api/auth/validate-token", json={"token": "garbage"}).json()["data"]
        assert invalid["valid"] is False

    def test_change_password(self, client, waiter_user, waiter_headers):
        response = client.post(
            "/api/auth/change-password",
            json={"currentPassword": TEST_PASSWORD, "newPassword": "newpass456"},
            headers=waiter_headers,
        )
        assert response.status_code == 200
        login(client, "waiter", "newpass456")

    def test_change_password_wrong_current(self, client, waiter_headers):
        response = client.post(
            "/api/auth/change-password",
            json={"currentPassword": "nope", "newPassword": "newpass456"},
            headers=waiter_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Current password is incorrect"

    def test_logout(self, client, waiter_headers):
        response = client.post("/api/auth/logout", headers=waiter_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Logout successful"


class TestMiddleware:
    def test_security_headers(self, client):
        response = client.get("/api/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"

    def test_non_json_body_is_rejected(self, client):
        response = client.post(
            "/api/auth/login",
            content="username=a&password=b",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        assert response.status_code == 415
        assert response.json()["success"] is False
