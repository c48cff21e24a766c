"""
Tests for authentication endpoints.

Tests:
- Login by email, student id or coordinator id
- Bearer header and HTTP-only cookie sessions
- Password change and logout
- Error envelope for authentication failures
"""

from datetime import timedelta

import pytest

from core.config import settings
from core.security import create_access_token
from database.models.users import UserRole

LOGIN = "/api/v1/auth/login"
ME = "/api/v1/auth/me"


class TestLogin:
    @pytest.mark.parametrize("field", ["email", "student_id"])
    async def test_login_by_identifier(self, client, students, field, password):
        student = students[0]
        response = await client.post(LOGIN, json={"identifier": getattr(student, field), "password": password})

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["user"]["id"] == student.id
        assert data["user"]["role"] == "student"
        assert settings.auth_cookie_name in response.cookies

    async def test_login_email_case_insensitive(self, client, students, password):
        response = await client.post(
            LOGIN, json={"identifier": students[0].email.upper(), "password": password}
        )
        assert response.status_code == 200

    async def test_login_by_coordinator_id(self, client, coordinator, password):
        response = await client.post(
            LOGIN, json={"identifier": coordinator.coordinator_id, "password": password}
        )
        assert response.status_code == 200
        assert response.json()["user"]["role"] == "coordinator"

    async def test_wrong_password(self, client, students):
        response = await client.post(LOGIN, json={"identifier": students[0].email, "password": "nope"})

        assert response.status_code == 401
        error = response.json()["error"]
        assert error["code"] == "NOT_AUTHENTICATED"
        assert error["message"] == "Invalid credentials"
        assert error["path"] == LOGIN

    async def test_unknown_identifier_same_message(self, client, students, password):
        response = await client.post(LOGIN, json={"identifier": "ghost", "password": password})
        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid credentials"

    async def test_inactive_account(self, client, make_user, password):
        user = await make_user(UserRole.STUDENT, is_active=False)
        response = await client.post(LOGIN, json={"identifier": user.email, "password": password})
        assert response.status_code == 403

    async def test_missing_fields(self, client):
        response = await client.post(LOGIN, json={"identifier": "x"})
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


class TestCurrentUser:
    async def test_bearer_header(self, client, admin, headers):
        response = await client.get(ME, headers=headers(admin))
        assert response.status_code == 200
        assert response.json()["role"] == "admin"

    async def test_cookie_session(self, client, students, password):
        await client.post(LOGIN, json={"identifier": students[0].email, "password": password})

        response = await client.get(ME)

        assert response.status_code == 200
        assert response.json()["id"] == students[0].id

    async def test_no_credentials(self, client):
        response = await client.get(ME)
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "NOT_AUTHENTICATED"

    async def test_expired_token(self, client, admin):
        token = create_access_token(admin.id, "admin", expires_delta=timedelta(seconds=-1))
        response = await client.get(ME, headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Token has expired"

    async def test_token_for_deleted_user(self, client):
        token = create_access_token(4242, "student")
        response = await client.get(ME, headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    async def test_request_id_echoed(self, client, admin, headers):
        response = await client.get(ME, headers={**headers(admin), "x-request-id": "trace-1"})
        assert response.headers["x-request-id"] == "trace-1"


class TestPasswordChange:
    URL = "/api/v1/auth/password/change"

    async def test_change_and_login(self, client, students, password, headers):
        student = students[0]
        response = await client.post(
            self.URL,
            json={"current_password": password, "new_password": "BrandNew9"},
            headers=headers(student),
        )
        assert response.status_code == 204

        old = await client.post(LOGIN, json={"identifier": student.email, "password": password})
        new = await client.post(LOGIN, json={"identifier": student.email, "password": "BrandNew9"})
        assert old.status_code == 401
        assert new.status_code == 200
        assert new.json()["user"]["must_change_password"] is False

    async def test_wrong_current_password(self, client, students, headers):
        response = await client.post(
            self.URL,
            json={"current_password": "wrong", "new_password": "BrandNew9"},
            headers=headers(students[0]),
        )
        assert response.status_code == 401

    async def test_weak_new_password(self, client, students, password, headers):
        response = await client.post(
            self.URL,
            json={"current_password": password, "new_password": "short"},
            headers=headers(students[0]),
        )
        assert response.status_code == 422


class TestLogout:
    async def test_logout_clears_cookie(self, client, students, password):
        await client.post(LOGIN, json={"identifier": students[0].email, "password": password})
        response = await client.post("/api/v1/auth/logout")

        assert response.status_code == 204
        assert settings.auth_cookie_name in response.headers.get("set-cookie", "")
        assert (await client.get(ME)).status_code == 401
