"""
Tests for the admin user-management endpoints.
"""

from database.models.users import UserRole

USERS = "/api/v1/users"

STUDENT = {
    "name": "Asha Rao",
    "email": "Asha.Rao@Example.com",
    "student_id": "CS-2031",
    "branch": "CSE",
    "college": "Engineering College",
    "semester": 5,
}


class TestCreateUsers:
    async def test_create_student(self, client, admin, headers):
        response = await client.post(f"{USERS}/students", json=STUDENT, headers=headers(admin))

        assert response.status_code == 201
        data = response.json()
        assert data["user"]["email"] == "asha.rao@example.com"
        assert data["user"]["role"] == "student"
        assert data["user"]["must_change_password"] is True
        assert len(data["temporary_password"]) >= 8

    async def test_temporary_password_logs_in(self, client, admin, headers):
        created = (await client.post(f"{USERS}/students", json=STUDENT, headers=headers(admin))).json()

        response = await client.post(
            "/api/v1/auth/login",
            json={"identifier": "CS-2031", "password": created["temporary_password"]},
        )
        assert response.status_code == 200

    async def test_create_coordinator(self, client, admin, headers):
        response = await client.post(
            f"{USERS}/coordinators",
            json={"name": "Dr. Menon", "email": "menon@example.com", "coordinator_id": "C-9"},
            headers=headers(admin),
        )
        assert response.status_code == 201
        assert response.json()["user"]["coordinator_id"] == "C-9"

    async def test_duplicate_email(self, client, admin, students, headers):
        payload = {**STUDENT, "email": students[0].email}
        response = await client.post(f"{USERS}/students", json=payload, headers=headers(admin))

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CONFLICT"

    async def test_duplicate_student_id(self, client, admin, students, headers):
        payload = {**STUDENT, "student_id": students[0].student_id}
        response = await client.post(f"{USERS}/students", json=payload, headers=headers(admin))
        assert response.status_code == 409

    async def test_invalid_semester(self, client, admin, headers):
        response = await client.post(
            f"{USERS}/students", json={**STUDENT, "semester": 11}, headers=headers(admin)
        )
        assert response.status_code == 422

    async def test_student_forbidden(self, client, students, headers):
        response = await client.post(f"{USERS}/students", json=STUDENT, headers=headers(students[0]))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "NOT_AUTHORIZED"

    async def test_coordinator_forbidden(self, client, coordinator, headers):
        response = await client.get(USERS, headers=headers(coordinator))
        assert response.status_code == 403


class TestListUsers:
    async def test_role_filter(self, client, admin, students, coordinator, headers):
        response = await client.get(USERS, params={"role": "student"}, headers=headers(admin))

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == len(students)
        assert {u["role"] for u in data["items"]} == {"student"}

    async def test_pagination(self, client, admin, students, headers):
        response = await client.get(USERS, params={"page": 2, "page_size": 2}, headers=headers(admin))

        data = response.json()
        assert data["total"] == len(students) + 1
        assert len(data["items"]) == 2

    async def test_unknown_role(self, client, admin, headers):
        response = await client.get(USERS, params={"role": "dean"}, headers=headers(admin))
        assert response.status_code == 422

    async def test_inactive_admin_rejected(self, client, make_user, headers):
        inactive = await make_user(UserRole.ADMIN, is_active=False)
        response = await client.get(USERS, headers=headers(inactive))
        assert response.status_code == 403


class TestManageCoordinators:
    async def test_update_coordinator(self, client, admin, coordinator, headers):
        response = await client.patch(
            f"{USERS}/coordinators/{coordinator.id}",
            json={"department": "ECE", "coordinator_id": "C-ECE"},
            headers=headers(admin),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["coordinator_id"] == "C-ECE"
        assert data["name"] == "Coordinator"

    async def test_id_change_keeps_semester_access(self, client, admin, coordinator, headers):
        created = await client.post(
            "/api/v1/learning/semesters", json={"name": "Semester 1"}, headers=headers(coordinator)
        )
        await client.patch(
            f"{USERS}/coordinators/{coordinator.id}", json={"coordinator_id": "C-MOVED"}, headers=headers(admin)
        )

        catalogue = (await client.get("/api/v1/learning/semesters", headers=headers(admin))).json()
        assert [(s["id"], s["coordinator_id"]) for s in catalogue] == [(created.json()["id"], "C-MOVED")]

    async def test_update_conflict(self, client, admin, coordinator, students, headers):
        response = await client.patch(
            f"{USERS}/coordinators/{coordinator.id}", json={"email": students[0].email}, headers=headers(admin)
        )
        assert response.status_code == 409

    async def test_update_student_not_found(self, client, admin, students, headers):
        response = await client.patch(
            f"{USERS}/coordinators/{students[0].id}", json={"name": "Nope"}, headers=headers(admin)
        )
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    async def test_delete_coordinator(self, client, admin, coordinator, headers):
        response = await client.delete(f"{USERS}/coordinators/{coordinator.id}", headers=headers(admin))
        assert response.status_code == 204

        listed = (await client.get(USERS, params={"role": "coordinator"}, headers=headers(admin))).json()
        assert listed["total"] == 0

    async def test_coordinator_cannot_manage_peers(self, client, coordinator, make_user, headers):
        other = await make_user(UserRole.COORDINATOR)
        response = await client.delete(f"{USERS}/coordinators/{other.id}", headers=headers(coordinator))
        assert response.status_code == 403
