"""
Integration tests for the job permission endpoints.

Runs the full application (authentication, error handling, routing) with
the database stores replaced by in-memory ones.

Tests:
- Authentication is required
- Current user's access report
- Permission management by owners and company admins
- Error codes for denied, missing and invalid requests
- Team listing behind viewer access
"""

import pytest
from datetime import timedelta
from fastapi.testclient import TestClient

from api.dependencies import get_job_permission_service
from api.main import app
from api.services.job_permissions import JobPermissionService
from core.access import AccessResolver, BackingStoreError, JobPermissionLevel
from core.middleware.authorization import get_access_resolver
from core.security import create_access_token


BASE = "/api/v1/jobs"


def auth(user_id: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


class BrokenGrantStore:
    async def get_grant(self, job_id, user_id):
        raise BackingStoreError("connection refused")

    async def list_grants(self, job_id):
        raise BackingStoreError("connection refused")


@pytest.fixture
def client(resolver, users, jobs, grants, email_service):
    """Test client wired to the in-memory stores."""
    service = JobPermissionService(resolver, users, jobs, grants, email_service=email_service)
    app.dependency_overrides[get_access_resolver] = lambda: resolver
    app.dependency_overrides[get_job_permission_service] = lambda: service
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


class TestAuthentication:
    """Test bearer token handling on job routes."""

    def test_missing_token(self, client):
        response = client.get(f"{BASE}/J1/access")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "TOKEN_MISSING"
        assert response.headers["www-authenticate"] == "Bearer"

    def test_invalid_token(self, client):
        response = client.get(
            f"{BASE}/J1/access", headers={"Authorization": "Bearer not-a-jwt"}
        )

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "TOKEN_INVALID"

    def test_expired_token(self, client):
        token = create_access_token("A1", expires_delta=timedelta(minutes=-5))

        response = client.get(
            f"{BASE}/J1/access", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "TOKEN_INVALID"

    def test_health_is_public(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestJobAccessEndpoint:
    """Test GET /jobs/{job_id}/access."""

    def test_company_admin(self, client):
        response = client.get(f"{BASE}/J1/access", headers=auth("A1"))

        assert response.status_code == 200
        assert response.json() == {
            "job_id": "J1",
            "has_access": True,
            "permission_level": "owner",
            "error": None,
        }

    def test_granted_user_with_required_level(self, client, grants):
        grants.add("J1", "U1", JobPermissionLevel.INTERVIEWER)

        ok = client.get(f"{BASE}/J1/access?required_level=viewer", headers=auth("U1"))
        denied = client.get(f"{BASE}/J1/access?required_level=manager", headers=auth("U1"))

        assert ok.json()["has_access"] is True
        assert ok.json()["permission_level"] == "interviewer"
        assert denied.json()["has_access"] is False
        assert denied.json()["permission_level"] is None
        assert denied.json()["error"] == (
            "You need manager level access or higher to perform this action"
        )

    def test_other_company_admin(self, client):
        response = client.get(f"{BASE}/J1/access", headers=auth("A2"))

        assert response.status_code == 200
        assert response.json()["has_access"] is False
        assert response.json()["error"] == "You do not have permission to access this job"

    def test_access_is_resolved_once_per_request(self, client, users, jobs, grants):
        grants.add("J1", "U1", JobPermissionLevel.MANAGER)

        response = client.get(f"{BASE}/J1/access?required_level=interviewer", headers=auth("U1"))

        assert response.json()["permission_level"] == "manager"
        assert users.calls == ["U1"]
        assert jobs.calls == ["J1"]
        assert grants.calls == [("J1", "U1")]

    def test_unknown_required_level(self, client):
        response = client.get(f"{BASE}/J1/access?required_level=root", headers=auth("A1"))

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


class TestListPermissionsEndpoint:
    """Test GET /jobs/{job_id}/permissions."""

    def test_owner_lists_permissions(self, client, grants):
        grants.add("J1", "U1", JobPermissionLevel.VIEWER)

        response = client.get(f"{BASE}/J1/permissions", headers=auth("O1"))

        assert response.status_code == 200
        permissions = response.json()["permissions"]
        assert len(permissions) == 1
        assert permissions[0]["user_id"] == "U1"
        assert permissions[0]["permission_level"] == "viewer"
        assert permissions[0]["user_email"] == "u1@example.com"
        assert permissions[0]["user_role"] == "member"

    def test_member_is_forbidden(self, client):
        response = client.get(f"{BASE}/J1/permissions", headers=auth("U1"))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "PERMISSION_DENIED"

    def test_unknown_job(self, client):
        response = client.get(f"{BASE}/missing/permissions", headers=auth("A1"))

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"


class TestGrantPermissionEndpoint:
    """Test POST /jobs/{job_id}/permissions."""

    def test_grant_by_email(self, client, resolver, email_service):
        response = client.post(
            f"{BASE}/J1/permissions",
            headers=auth("A1"),
            json={"user_email": "U3@Example.com", "permission_level": "manager"},
        )

        assert response.status_code == 200
        permission = response.json()["permission"]
        assert permission["user_id"] == "U3"
        assert permission["permission_level"] == "manager"
        assert permission["granted_by"] == "A1"
        assert len(email_service.sent) == 1

    def test_grant_requires_target(self, client):
        response = client.post(
            f"{BASE}/J1/permissions",
            headers=auth("A1"),
            json={"permission_level": "viewer"},
        )

        assert response.status_code == 422

    def test_owner_level_cannot_be_granted(self, client):
        response = client.post(
            f"{BASE}/J1/permissions",
            headers=auth("A1"),
            json={"user_id": "U1", "permission_level": "owner"},
        )

        assert response.status_code == 422

    def test_cross_company_target(self, client, grants):
        response = client.post(
            f"{BASE}/J1/permissions",
            headers=auth("A1"),
            json={"user_id": "U2", "permission_level": "viewer"},
        )

        assert response.status_code == 403
        assert response.json()["error"]["message"] == (
            "Can only grant permissions to users in the same company"
        )
        assert grants.grants == {}

    def test_unknown_target(self, client):
        response = client.post(
            f"{BASE}/J1/permissions",
            headers=auth("A1"),
            json={"user_id": "ghost", "permission_level": "viewer"},
        )

        assert response.status_code == 404

    def test_granted_admin_cannot_grant(self, client, grants):
        grants.add("J1", "U1", JobPermissionLevel.ADMIN)

        response = client.post(
            f"{BASE}/J1/permissions",
            headers=auth("U1"),
            json={"user_id": "U3", "permission_level": "viewer"},
        )

        assert response.status_code == 403


class TestUpdateAndRevokeEndpoints:
    """Test PATCH and DELETE /jobs/permissions/{permission_id}."""

    def test_update_level(self, client, grants):
        grant = grants.add("J1", "U1", JobPermissionLevel.VIEWER)

        response = client.patch(
            f"{BASE}/permissions/{grant.id}",
            headers=auth("A1"),
            json={"permission_level": "admin"},
        )

        assert response.status_code == 200
        assert response.json()["permission"]["permission_level"] == "admin"

    def test_update_missing_permission(self, client):
        response = client.patch(
            f"{BASE}/permissions/missing",
            headers=auth("A1"),
            json={"permission_level": "admin"},
        )

        assert response.status_code == 404

    def test_revoke(self, client, grants):
        grant = grants.add("J1", "U1", JobPermissionLevel.MANAGER)

        response = client.delete(f"{BASE}/permissions/{grant.id}", headers=auth("O1"))

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Permission revoked successfully",
        }
        assert grants.grants == {}

    def test_self_revocation_of_admin(self, client, grants):
        grant = grants.add("J1", "O1", JobPermissionLevel.ADMIN)

        response = client.delete(f"{BASE}/permissions/{grant.id}", headers=auth("O1"))

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "SELF_REVOCATION"


class TestTeamEndpoint:
    """Test GET /jobs/{job_id}/team."""

    def test_viewer_sees_team(self, client, grants):
        grants.add("J1", "U1", JobPermissionLevel.VIEWER)
        grants.add("J1", "U3", JobPermissionLevel.INTERVIEWER)

        response = client.get(f"{BASE}/J1/team", headers=auth("U1"))

        assert response.status_code == 200
        assert {p["user_id"] for p in response.json()["permissions"]} == {"U1", "U3"}

    def test_user_without_grant_is_forbidden(self, client):
        response = client.get(f"{BASE}/J1/team", headers=auth("U3"))

        assert response.status_code == 403
        assert response.json()["error"]["message"] == (
            "You need viewer level access or higher to perform this action"
        )

    def test_other_company_is_forbidden(self, client):
        response = client.get(f"{BASE}/J1/team", headers=auth("U2"))

        assert response.status_code == 403


class TestStoreFailures:
    """Test behaviour when the grant store is unavailable."""

    def test_access_check_denies(self, client, users, jobs):
        app.dependency_overrides[get_access_resolver] = lambda: AccessResolver(
            users, jobs, BrokenGrantStore()
        )

        response = client.get(f"{BASE}/J1/access", headers=auth("U1"))

        assert response.status_code == 200
        assert response.json()["has_access"] is False

    def test_management_reports_unavailable(self, client, resolver, users, jobs):
        service = JobPermissionService(resolver, users, jobs, BrokenGrantStore())
        app.dependency_overrides[get_job_permission_service] = lambda: service

        response = client.get(f"{BASE}/J1/permissions", headers=auth("A1"))

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "DATABASE_ERROR"
