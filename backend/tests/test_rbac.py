"""Tests for RBAC and authentication: roles, permissions, login and tokens."""
from datetime import timedelta
from unittest.mock import Mock

import pytest

from apps.core.auth import (
    REFRESH_TOKEN,
    create_access_token,
    create_refresh_token,
    get_user_from_token,
)
from apps.core.context import Context
from apps.core.permissions import ALL_PERMISSIONS, DEFAULT_ROLES, normalize_permissions
from apps.tenants.models import Role, Tenant, User
from config.schema import schema


def run_graphql(query, variables, context):
    """Helper to run GraphQL queries synchronously."""
    return schema.execute_sync(query, variable_values=variables, context_value=context)


def make_context(user=None):
    """Create a proper Context object for GraphQL testing."""
    request = Mock()
    return Context(request=request, user=user)


@pytest.fixture
def manager_user(db, tenant):
    u = User.objects.create_user(
        email="manager@example.com", password="mgr123", tenant=tenant
    )
    manager_role = Role.objects.get(tenant=tenant, name="Manager")
    u.roles.add(manager_role)
    return u


LOGIN = """
    mutation Login($email: String!, $password: String!) {
        login(email: $email, password: $password) {
            ... on AuthPayload { accessToken refreshToken email tenantId }
            ... on AuthError { message }
        }
    }
"""


class TestDefaultRoles:
    """Tests for the seeded roles and permission normalization."""

    def test_tenant_gets_default_roles(self, tenant):
        names = set(Role.objects.filter(tenant=tenant).values_list("name", flat=True))

        assert names == {"Admin", "Manager", "Viewer"}

    def test_admin_has_everything(self, tenant):
        admin = Role.objects.get(tenant=tenant, name="Admin")

        assert set(admin.permissions) == ALL_PERMISSIONS

    def test_manager_cannot_change_marketplace_settings(self):
        assert "marketplace.sync" in DEFAULT_ROLES["Manager"]
        assert "marketplace.settings" not in DEFAULT_ROLES["Manager"]
        assert not any(p.startswith("users.") for p in DEFAULT_ROLES["Manager"])

    def test_viewer_is_read_only(self):
        assert all(p.endswith(".read") for p in DEFAULT_ROLES["Viewer"])

    def test_normalize_list_format(self):
        result = normalize_permissions({"contracts": ["read", "fly"], "bogus.read": True, "invoices.write": True})

        assert result == {"contracts.read": True, "invoices.write": True}

    def test_superuser_bypasses_roles(self, tenant):
        root = User.objects.create_superuser(email="root@example.com", password="x", tenant=tenant)

        assert root.has_perm_check("marketplace", "settings") is True

    def test_effective_permissions_union(self, manager_user, viewer_user):
        assert manager_user.has_perm_check("contracts", "delete") is True
        assert viewer_user.has_perm_check("contracts", "delete") is False
        assert viewer_user.has_perm_check("marketplace", "read") is True


class TestTokens:
    """Tests for JWT issuing and validation."""

    def test_access_token_resolves_user(self, user):
        token = create_access_token(user)

        assert get_user_from_token(token) == user

    def test_refresh_token_not_accepted_as_access(self, user):
        token = create_refresh_token(user)

        assert get_user_from_token(token) is None
        assert get_user_from_token(token, token_type=REFRESH_TOKEN) == user

    def test_expired_token(self, user):
        token = create_access_token(user, expires_delta=timedelta(seconds=-1))

        assert get_user_from_token(token) is None

    def test_garbage_token(self, db):
        assert get_user_from_token("not-a-jwt") is None

    def test_inactive_user_rejected(self, user):
        token = create_access_token(user)
        user.is_active = False
        user.save()

        assert get_user_from_token(token) is None


class TestAuthMutations:
    """Tests for login, token refresh and current user."""

    def test_login(self, user):
        result = run_graphql(
            LOGIN, {"email": "test@example.com", "password": "testpass123"}, make_context()
        )

        assert result.errors is None
        payload = result.data["login"]
        assert payload["email"] == "test@example.com"
        assert payload["tenantId"] == user.tenant_id
        assert get_user_from_token(payload["accessToken"]) == user

    def test_login_wrong_password(self, user):
        result = run_graphql(LOGIN, {"email": "test@example.com", "password": "nope"}, make_context())

        assert result.data["login"] == {"message": "Invalid email or password"}

    def test_login_inactive_tenant(self, user, tenant):
        tenant.is_active = False
        tenant.save()

        result = run_graphql(
            LOGIN, {"email": "test@example.com", "password": "testpass123"}, make_context()
        )

        assert result.data["login"] == {"message": "Tenant is inactive"}

    def test_refresh(self, user):
        mutation = """
            mutation Refresh($token: String!) {
                refreshToken(refreshToken: $token) {
                    ... on AuthPayload { accessToken }
                    ... on AuthError { message }
                }
            }
        """

        ok = run_graphql(mutation, {"token": create_refresh_token(user)}, make_context())
        bad = run_graphql(mutation, {"token": create_access_token(user)}, make_context())

        assert get_user_from_token(ok.data["refreshToken"]["accessToken"]) == user
        assert bad.data["refreshToken"] == {"message": "Invalid or expired refresh token"}

    def test_me(self, viewer_user):
        query = "query { me { email tenantName roles permissions } }"

        result = run_graphql(query, {}, make_context(viewer_user))

        assert result.data["me"] == {
            "email": "viewer@example.com",
            "tenantName": "Test Company",
            "roles": ["Viewer"],
            "permissions": ["contracts.read", "invoices.read", "marketplace.read"],
        }

    def test_me_anonymous(self, db):
        result = run_graphql("query { me { email } }", {}, make_context())

        assert result.data["me"] is None


class TestPermissionEnforcement:
    """Tests that role permissions gate GraphQL operations."""

    def test_viewer_cannot_delete_contract(self, viewer_user, make_contract):
        contract = make_contract()
        mutation = "mutation Delete($id: ID!) { deleteContract(contractId: $id) { success error } }"

        result = run_graphql(mutation, {"id": str(contract.id)}, make_context(viewer_user))

        assert result.data["deleteContract"]["error"] == "Permission denied"

    def test_user_without_roles_cannot_read(self, tenant):
        nobody = User.objects.create_user(email="nobody@example.com", password="x", tenant=tenant)

        result = run_graphql("query { contracts { id } }", {}, make_context(nobody))

        assert result.errors is not None
        assert "Permission denied" in result.errors[0].message

    def test_graphql_endpoint_accepts_bearer(self, client, user):
        response = client.post(
            "/graphql",
            data={"query": "query { me { email } }"},
            content_type="application/json",
            HTTP_AUTHORIZATION=f"Bearer {create_access_token(user)}",
        )

        assert response.status_code == 200
        assert response.json()["data"]["me"]["email"] == "test@example.com"
