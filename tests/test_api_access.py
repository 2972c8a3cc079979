"""Tests for the /auth and /access routes."""

from __future__ import annotations

from fastapi.testclient import TestClient

from app.core.rbac import PERMISSION_CATALOG, ROLE_PERMISSIONS, Role


class TestAuth:
    def test_login_rejects_bad_password(self, client: TestClient) -> None:
        """Should return 401 for a wrong password."""
        response = client.post("/auth/token", data={"username": "admin", "password": "nope"})
        assert response.status_code == 401

    def test_me_returns_stored_profile(self, client: TestClient, login) -> None:
        response = client.get("/auth/me", headers=login("lead_rohan"))
        assert response.status_code == 200
        body = response.json()
        assert body["user_id"] == "u-tl-1"
        assert body["role"] == "Team Lead"
        assert body["team_id"] == "t1"

    def test_missing_token_is_unauthorized(self, client: TestClient) -> None:
        assert client.get("/access/navigation").status_code == 401

    def test_garbage_token_is_unauthorized(self, client: TestClient) -> None:
        response = client.get("/access/navigation", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_user_listing_requires_users_manage(self, client: TestClient, login) -> None:
        """Should let HR list users and refuse an Employee with a bare Forbidden."""
        assert client.get("/auth/users", headers=login("hr_alisha")).status_code == 200
        denied = client.get("/auth/users", headers=login("emp_priya"))
        assert denied.status_code == 403
        assert denied.json() == {"detail": "Forbidden"}


class TestEffectivePermissionsRoute:
    def test_employee_permissions(self, client: TestClient, login) -> None:
        response = client.get("/access/me/permissions", headers=login("emp_priya"))
        assert response.status_code == 200
        assert response.json() == {
            "user_id": "u-emp-1",
            "role": "Employee",
            "permissions": [
                "attendance:view:own",
                "dashboard:view",
                "payroll:view:own",
                "tasks:view",
                "timesheet:view",
            ],
        }


class TestNavigationRoute:
    def test_business_development_navigation(self, client: TestClient, login) -> None:
        """Should show lead generation and clients only."""
        response = client.get("/access/navigation", headers=login("bd_karan"))
        assert response.status_code == 200
        sections = response.json()["sections"]
        assert set(sections) == {"main", "client_hub"}
        assert [e["label"] for e in sections["main"]] == ["Dashboard", "Lead Generation"]
        assert [e["label"] for e in sections["client_hub"]] == ["Clients"]

    def test_hr_admin_section(self, client: TestClient, login) -> None:
        sections = client.get("/access/navigation", headers=login("hr_alisha")).json()["sections"]
        assert [e["label"] for e in sections["admin"]] == ["User Management", "Audit Log"]


class TestOverrides:
    def test_grant_then_revoke_audit_access(self, client: TestClient, login) -> None:
        """Should open the audit log to one Employee and close it again on delete."""
        admin = login("admin")
        assert client.get("/audit/events", headers=login("emp_priya")).status_code == 403

        response = client.put(
            "/access/overrides",
            json={"user_id": "u-emp-1", "permission": "audit-log:view", "has_permission": True},
            headers=admin,
        )
        assert response.status_code == 200
        assert response.json()["has_permission"] is True

        assert client.get("/audit/events", headers=login("emp_priya")).status_code == 200
        assert client.get("/audit/events", headers=login("emp_arjun")).status_code == 403

        listed = client.get("/access/overrides", params={"user_id": "u-emp-1"}, headers=admin).json()
        assert [(o["permission"], o["has_permission"]) for o in listed] == [("audit-log:view", True)]

        deleted = client.delete("/access/overrides/u-emp-1/audit-log:view", headers=admin)
        assert deleted.status_code == 204
        assert client.get("/audit/events", headers=login("emp_priya")).status_code == 403

    def test_revoke_override_hides_navigation_entry(self, client: TestClient, login) -> None:
        client.put(
            "/access/overrides",
            json={"user_id": "u-hr-1", "permission": "users:manage", "has_permission": False},
            headers=login("admin"),
        )
        sections = client.get("/access/navigation", headers=login("hr_alisha")).json()["sections"]
        assert [e["label"] for e in sections["admin"]] == ["Audit Log"]
        assert client.get("/auth/users", headers=login("hr_alisha")).status_code == 403

    def test_second_write_replaces_first(self, client: TestClient, login) -> None:
        """Should keep one row per user and permission, last write winning."""
        admin = login("admin")
        for grant in (True, False):
            client.put(
                "/access/overrides",
                json={"user_id": "u-emp-2", "permission": "clients:view", "has_permission": grant},
                headers=admin,
            )
        listed = client.get("/access/overrides", params={"user_id": "u-emp-2"}, headers=admin).json()
        assert len(listed) == 1
        assert listed[0]["has_permission"] is False

    def test_unknown_permission_is_rejected(self, client: TestClient, login) -> None:
        response = client.put(
            "/access/overrides",
            json={"user_id": "u-emp-1", "permission": "crm:view:own", "has_permission": True},
            headers=login("admin"),
        )
        assert response.status_code == 400

    def test_unknown_user_is_not_found(self, client: TestClient, login) -> None:
        response = client.put(
            "/access/overrides",
            json={"user_id": "u-ghost", "permission": "clients:view", "has_permission": True},
            headers=login("admin"),
        )
        assert response.status_code == 404

    def test_deleting_missing_override_is_not_found(self, client: TestClient, login) -> None:
        response = client.delete("/access/overrides/u-emp-1/clients:view", headers=login("admin"))
        assert response.status_code == 404

    def test_employee_cannot_manage_overrides(self, client: TestClient, login) -> None:
        response = client.put(
            "/access/overrides",
            json={"user_id": "u-emp-1", "permission": "users:manage", "has_permission": True},
            headers=login("emp_priya"),
        )
        assert response.status_code == 403

    def test_sub_admin_cannot_grant_itself(self, client: TestClient, login) -> None:
        """Should keep the audit log closed to a Sub-Admin that tries to open it for itself."""
        subadmin = login("subadmin")
        response = client.put(
            "/access/overrides",
            json={"user_id": "u-subadmin-1", "permission": "audit-log:view", "has_permission": True},
            headers=subadmin,
        )
        assert response.status_code == 403
        assert response.json() == {"detail": "Forbidden"}
        assert client.get("/audit/events", headers=subadmin).status_code == 403

    def test_sub_admin_cannot_revoke_from_admin(self, client: TestClient, login) -> None:
        response = client.put(
            "/access/overrides",
            json={"user_id": "u-admin-1", "permission": "permissions:manage", "has_permission": False},
            headers=login("subadmin"),
        )
        assert response.status_code == 403
        assert client.get("/access/catalog", headers=login("admin")).status_code == 200

    def test_sub_admin_cannot_delete_overrides(self, client: TestClient, login) -> None:
        client.put(
            "/access/overrides",
            json={"user_id": "u-emp-1", "permission": "clients:view", "has_permission": True},
            headers=login("admin"),
        )
        response = client.delete("/access/overrides/u-emp-1/clients:view", headers=login("subadmin"))
        assert response.status_code == 403

    def test_admin_permissions_cannot_be_revoked(self, client: TestClient, login) -> None:
        """Should refuse a revoke aimed at an Admin user, even from Admin."""
        response = client.put(
            "/access/overrides",
            json={"user_id": "u-admin-1", "permission": "permissions:manage", "has_permission": False},
            headers=login("admin"),
        )
        assert response.status_code == 400
        assert client.get("/access/catalog", headers=login("admin")).status_code == 200

    def test_sub_admin_write_attempt_is_audited(self, client: TestClient, login) -> None:
        response = client.put(
            "/access/overrides",
            json={"user_id": "u-subadmin-1", "permission": "teams:manage", "has_permission": True},
            headers=login("subadmin"),
        )
        events = client.get(
            "/audit/events",
            params={"event_type": "access_denied", "user_id": "u-subadmin-1", "limit": 1},
            headers=login("admin"),
        ).json()
        assert events[0]["module"] == "permissions"

        assert response.status_code == 403


class TestRoleTable:
    def test_sub_admin_can_read_catalog_and_roles(self, client: TestClient, login) -> None:
        headers = login("subadmin")
        catalog = client.get("/access/catalog", headers=headers)
        assert catalog.status_code == 200
        assert {"key": "teams:manage", "description": "Manage teams and projects"} in catalog.json()
        roles = client.get("/access/roles", headers=headers).json()["roles"]
        assert roles["Business Development"] == ["clients:view", "dashboard:view", "lead-generation:view"]

    def test_update_changes_live_decisions(self, client: TestClient, login) -> None:
        """Should apply a new HR row to the next request."""
        response = client.put(
            "/access/roles",
            json={"roles": {"HR": ["dashboard:view", "audit-log:view"]}},
            headers=login("admin"),
        )
        assert response.status_code == 200
        assert response.json()["roles"]["HR"] == ["audit-log:view", "dashboard:view"]
        assert client.get("/auth/users", headers=login("hr_alisha")).status_code == 403

    def test_admin_row_stays_full(self, client: TestClient, login) -> None:
        response = client.put(
            "/access/roles",
            json={"roles": {"Admin": ["dashboard:view"]}},
            headers=login("admin"),
        )
        assert response.status_code == 200
        assert len(response.json()["roles"]["Admin"]) == 15

    def test_unknown_key_is_bad_request(self, client: TestClient, login) -> None:
        response = client.put(
            "/access/roles",
            json={"roles": {"Employee": ["dashboard:view", "crm:view:own"]}},
            headers=login("admin"),
        )
        assert response.status_code == 400

    def test_hr_cannot_edit_roles(self, client: TestClient, login) -> None:
        response = client.put(
            "/access/roles",
            json={"roles": {"HR": ["dashboard:view"]}},
            headers=login("hr_alisha"),
        )
        assert response.status_code == 403

    def test_sub_admin_cannot_edit_roles(self, client: TestClient, login) -> None:
        """Should leave the table untouched when a Sub-Admin tries to widen its own row."""
        response = client.put(
            "/access/roles",
            json={"roles": {"Sub-Admin": sorted(PERMISSION_CATALOG)}},
            headers=login("subadmin"),
        )
        assert response.status_code == 403
        roles = client.get("/access/roles", headers=login("admin")).json()["roles"]
        assert roles["Sub-Admin"] == sorted(ROLE_PERMISSIONS[Role.SUB_ADMIN])


class TestTeams:
    def test_added_member_becomes_visible_to_lead(self, client: TestClient, login) -> None:
        """Should widen the lead's attendance view once Neha joins team t1."""
        lead = login("lead_rohan")
        before = client.get("/records/attendance", headers=lead).json()["items"]
        assert "u-emp-3" not in {r["owner_id"] for r in before}

        response = client.post(
            "/access/teams/t1/members",
            json={"user_id": "u-emp-3", "role": "member"},
            headers=login("admin"),
        )
        assert response.status_code == 200

        after = client.get("/records/attendance", headers=lead).json()["items"]
        assert "u-emp-3" in {r["owner_id"] for r in after}

    def test_removed_member_drops_out(self, client: TestClient, login) -> None:
        response = client.delete("/access/teams/t1/members/u-emp-2", headers=login("admin"))
        assert response.status_code == 204
        items = client.get("/records/attendance", headers=login("lead_rohan")).json()["items"]
        assert {r["owner_id"] for r in items} == {"u-tl-1", "u-emp-1"}

    def test_listing_filters_by_team(self, client: TestClient, login) -> None:
        rows = client.get("/access/teams", params={"team_id": "t2"}, headers=login("admin")).json()
        assert rows == [{"team_id": "t2", "user_id": "u-emp-3", "role": "member"}]

    def test_hr_cannot_manage_teams(self, client: TestClient, login) -> None:
        response = client.post(
            "/access/teams/t1/members",
            json={"user_id": "u-emp-3"},
            headers=login("hr_alisha"),
        )
        assert response.status_code == 403

    def test_removing_unknown_member_is_not_found(self, client: TestClient, login) -> None:
        response = client.delete("/access/teams/t9/members/u-emp-1", headers=login("admin"))
        assert response.status_code == 404
