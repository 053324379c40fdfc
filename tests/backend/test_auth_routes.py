"""
Tests for the HTTP endpoints.

These tests verify:
- Registration and login responses
- Typed service errors map to status codes and headers
- Bearer token protection, including the two-factor step
- Admin-only endpoints
"""

import pyotp
import pytest
import pytest_asyncio

from accountguard.core.timeutils import to_timestamp
from accountguard.models.account import AccountRole


def login(client, email="learner@example.com", password="SecurePassword123!"):
    return client.post("/auth/login", json={"email": email, "password": password})


@pytest_asyncio.fixture
async def admin_account(make_account):
    return await make_account("admin@example.com", role=AccountRole.ADMIN)


@pytest.fixture
def admin_headers(auth_service, admin_account, bearer):
    return bearer(auth_service.issue_access_token(admin_account))


class TestRegister:

    def test_register_returns_public_view(self, client):
        response = client.post(
            "/auth/register",
            json={
                "email": "New@Example.com",
                "password": "SecurePassword123!",
                "password_confirm": "SecurePassword123!",
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "new@example.com"
        assert data["role"] == "user"
        assert "password_hash" not in data
        assert "two_factor_secret" not in data

    def test_password_mismatch(self, client, assert_error_response):
        response = client.post(
            "/auth/register",
            json={
                "email": "new@example.com",
                "password": "SecurePassword123!",
                "password_confirm": "Different123!",
            },
        )

        assert_error_response(response, 400, "do not match")

    def test_weak_password(self, client, assert_error_response):
        response = client.post(
            "/auth/register",
            json={"email": "new@example.com", "password": "short", "password_confirm": "short"},
        )

        assert_error_response(response, 422, "password")

    def test_duplicate_email(self, client, registered_account, assert_error_response):
        response = client.post(
            "/auth/register",
            json={
                "email": "LEARNER@example.com",
                "password": "SecurePassword123!",
                "password_confirm": "SecurePassword123!",
            },
        )

        assert_error_response(response, 409, "already registered")


class TestLogin:

    def test_login_success(self, client, registered_account):
        response = login(client)

        assert response.status_code == 200
        data = response.json()
        assert data["access_token"]
        assert data["refresh_token"]
        assert data["token_type"] == "bearer"
        assert data["requires_two_factor"] is False
        assert data["account"]["id"] == registered_account.id

    def test_wrong_password(self, client, registered_account, assert_error_response):
        response = login(client, password="WrongPassword!")

        assert_error_response(response, 401, "invalid email or password")
        assert response.headers["www-authenticate"] == "Bearer"

    def test_unknown_email_looks_the_same(self, client, assert_error_response):
        response = login(client, email="nobody@example.com")

        assert_error_response(response, 401, "invalid email or password")

    def test_locked_account_gets_423_with_retry_after(
        self, client, registered_account, assert_error_response
    ):
        for _ in range(5):
            assert login(client, password="WrongPassword!").status_code == 401

        response = login(client)

        assert_error_response(response, 423, "30 minute")
        assert response.headers["retry-after"] == str(30 * 60)

    def test_missing_signing_secret_is_opaque_500(
        self, app, client, mock_auth_db, policy, clock, registered_account
    ):
        from accountguard.dependencies.auth import get_auth_service
        from accountguard.services.auth_service import AuthService

        unsigned = policy.model_copy(update={"access_secret": None})
        app.dependency_overrides[get_auth_service] = lambda: AuthService(
            mock_auth_db, policy=unsigned, clock=clock
        )

        response = login(client)

        assert response.status_code == 500
        assert response.json() == {"detail": "Internal authentication error"}

    def test_refresh(self, client, registered_account):
        tokens = login(client).json()

        response = client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})

        assert response.status_code == 200
        assert response.json()["access_token"]

    def test_refresh_with_garbage(self, client, assert_error_response):
        response = client.post("/auth/refresh", json={"refresh_token": "garbage"})

        assert_error_response(response, 400, "invalid")


class TestMe:

    def test_me_requires_token(self, client, assert_error_response):
        assert_error_response(client.get("/auth/me"), 401)

    def test_me_with_bad_token(self, client, bearer, assert_error_response):
        assert_error_response(client.get("/auth/me", headers=bearer("garbage")), 401)

    def test_me(self, client, registered_account, bearer):
        token = login(client).json()["access_token"]

        response = client.get("/auth/me", headers=bearer(token))

        assert response.status_code == 200
        assert response.json()["email"] == "learner@example.com"

    def test_deactivated_account_is_forbidden(
        self, client, registered_account, admin_headers, bearer, assert_error_response
    ):
        token = login(client).json()["access_token"]
        client.post(f"/admin/accounts/{registered_account.id}/deactivate", headers=admin_headers)

        assert_error_response(client.get("/auth/me", headers=bearer(token)), 403)
        assert_error_response(login(client), 403, "disabled")


class TestPasswordRecovery:

    def test_forgot_password_unknown_email_still_accepted(self, client):
        response = client.post("/auth/password/forgot", json={"email": "nobody@example.com"})

        assert response.status_code == 202

    def test_forgot_password_known_email(self, client, registered_account):
        response = client.post("/auth/password/forgot", json={"email": "learner@example.com"})

        assert response.status_code == 202

    def test_reset_with_unknown_token(self, client, assert_error_response):
        response = client.post(
            "/auth/password/reset",
            json={"token": "0" * 64, "new_password": "NewPassword456!"},
        )

        assert_error_response(response, 400, "invalid")

    def test_verify_email_with_unknown_token(self, client, assert_error_response):
        response = client.post("/auth/email/verify", json={"token": "0" * 64})

        assert_error_response(response, 400, "invalid")

    def test_change_password(self, client, registered_account, bearer, clock):
        token = login(client).json()["access_token"]

        clock.advance(seconds=5)
        response = client.post(
            "/auth/password/change",
            headers=bearer(token),
            json={"current_password": "SecurePassword123!", "new_password": "NewPassword456!"},
        )

        assert response.status_code == 200
        assert client.get("/auth/me", headers=bearer(token)).status_code == 401
        assert login(client, password="NewPassword456!").status_code == 200


@pytest.fixture
def enroll(client, bearer, clock):
    """Enable and confirm 2FA for the logged-in learner; returns the enrollment body."""
    def _enroll():
        token = login(client).json()["access_token"]
        enrollment = client.post("/auth/2fa/enable", headers=bearer(token)).json()
        code = pyotp.TOTP(enrollment["secret"]).at(to_timestamp(clock()))
        response = client.post("/auth/2fa/verify", headers=bearer(token), json={"code": code})
        assert response.status_code == 200
        return enrollment
    return _enroll


class TestTwoFactorEnrollment:

    def test_enable_does_not_switch_two_factor_on(self, client, registered_account, bearer):
        token = login(client).json()["access_token"]

        enrollment = client.post("/auth/2fa/enable", headers=bearer(token))

        assert enrollment.status_code == 200
        assert len(enrollment.json()["recovery_codes"]) == 10
        assert client.get("/auth/me", headers=bearer(token)).status_code == 200
        assert login(client).json()["requires_two_factor"] is False

    def test_verify_turns_two_factor_on(self, client, registered_account, bearer, clock):
        token = login(client).json()["access_token"]
        enrollment = client.post("/auth/2fa/enable", headers=bearer(token)).json()
        code = pyotp.TOTP(enrollment["secret"]).at(to_timestamp(clock()))

        response = client.post("/auth/2fa/verify", headers=bearer(token), json={"code": code})

        assert response.status_code == 200
        body = response.json()
        assert body["requires_two_factor"] is False
        assert body["account"]["two_factor_enabled"] is True
        assert client.get("/auth/me", headers=bearer(body["access_token"])).status_code == 200
        assert login(client).json()["requires_two_factor"] is True

    def test_verify_with_wrong_code(
        self, client, registered_account, bearer, clock, assert_error_response
    ):
        token = login(client).json()["access_token"]
        enrollment = client.post("/auth/2fa/enable", headers=bearer(token)).json()
        stale = pyotp.TOTP(enrollment["secret"]).at(to_timestamp(clock()) - 300)

        response = client.post("/auth/2fa/verify", headers=bearer(token), json={"code": stale})

        assert_error_response(response, 400, "invalid two-factor code")
        assert login(client).json()["requires_two_factor"] is False

    def test_verify_without_enable(
        self, client, registered_account, bearer, assert_error_response
    ):
        token = login(client).json()["access_token"]

        response = client.post("/auth/2fa/verify", headers=bearer(token), json={"code": "123456"})

        assert_error_response(response, 400, "not been started")


class TestTwoFactorFlow:

    def test_full_two_factor_login(self, client, registered_account, bearer, clock, enroll):
        enrollment = enroll()

        first_step = login(client).json()
        assert first_step["requires_two_factor"] is True
        pending = first_step["access_token"]

        response = client.get("/auth/me", headers=bearer(pending))
        assert response.status_code == 401
        assert "two-factor" in response.json()["detail"].lower()

        code = pyotp.TOTP(enrollment["secret"]).at(to_timestamp(clock()))
        second_step = client.post("/auth/login/2fa", headers=bearer(pending), json={"code": code})
        assert second_step.status_code == 200
        assert second_step.json()["requires_two_factor"] is False

        verified = second_step.json()["access_token"]
        assert client.get("/auth/me", headers=bearer(verified)).status_code == 200

    def test_recovery_code_completes_login_once(self, client, registered_account, bearer, enroll):
        codes = enroll()["recovery_codes"]
        pending = login(client).json()["access_token"]

        first = client.post("/auth/login/2fa", headers=bearer(pending), json={"code": codes[0]})
        again = client.post("/auth/login/2fa", headers=bearer(pending), json={"code": codes[0]})

        assert first.status_code == 200
        assert again.status_code == 401

    def test_fifth_wrong_code_locks_account(
        self, client, registered_account, bearer, clock, enroll, assert_error_response
    ):
        enrollment = enroll()
        pending = login(client).json()["access_token"]

        for _ in range(5):
            response = client.post(
                "/auth/login/2fa", headers=bearer(pending), json={"code": "00000000"}
            )
            assert response.status_code == 401

        code = pyotp.TOTP(enrollment["secret"]).at(to_timestamp(clock()))
        after_lock = client.post("/auth/login/2fa", headers=bearer(pending), json={"code": code})
        assert after_lock.status_code == 401

        assert_error_response(login(client), 423, "30 minute")

    def test_disable_two_factor(self, client, registered_account, bearer, clock, enroll):
        enrollment = enroll()
        pending = login(client).json()["access_token"]
        code = pyotp.TOTP(enrollment["secret"]).at(to_timestamp(clock()))
        verified = client.post(
            "/auth/login/2fa", headers=bearer(pending), json={"code": code}
        ).json()["access_token"]

        response = client.post(
            "/auth/2fa/disable",
            headers=bearer(verified),
            json={"password": "SecurePassword123!"},
        )

        assert response.status_code == 200
        assert login(client).json()["requires_two_factor"] is False


class TestAdmin:

    def test_regular_user_forbidden(self, client, registered_account, bearer):
        token = login(client).json()["access_token"]

        response = client.get("/admin/accounts", headers=bearer(token))

        assert response.status_code == 403

    def test_list_accounts_hides_locked(self, client, registered_account, admin_headers):
        for _ in range(5):
            login(client, password="WrongPassword!")

        response = client.get("/admin/accounts", headers=admin_headers)

        assert response.status_code == 200
        assert [a["email"] for a in response.json()] == ["admin@example.com"]

    def test_unlock(self, client, registered_account, admin_headers):
        for _ in range(5):
            login(client, password="WrongPassword!")
        assert login(client).status_code == 423

        response = client.post(
            f"/admin/accounts/{registered_account.id}/unlock", headers=admin_headers
        )

        assert response.status_code == 204
        assert login(client).status_code == 200

    def test_unlock_unknown_account(self, client, admin_headers, assert_error_response):
        response = client.post(
            "/admin/accounts/507f1f77bcf86cd799439011/unlock", headers=admin_headers
        )

        assert_error_response(response, 404, "not found")
