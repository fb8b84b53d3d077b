"""Pytest configuration and fixtures."""
from datetime import date
from decimal import Decimal

import pytest
from apps.contracts.models import Contract
from apps.tenants.models import Role, Tenant, User


@pytest.fixture
def tenant(db):
    """Create a test tenant.

    The post_save signal creates default roles (Admin, Manager, Viewer).
    """
    return Tenant.objects.create(
        name="Test Company",
        currency="USD",
    )


@pytest.fixture
def user(db, tenant):
    """Create a test user with Admin role (full permissions for tests)."""
    u = User.objects.create_user(
        email="test@example.com",
        password="testpass123",
        tenant=tenant,
    )
    admin_role = Role.objects.get(tenant=tenant, name="Admin")
    u.roles.add(admin_role)
    return u


@pytest.fixture
def viewer_user(db, tenant):
    u = User.objects.create_user(
        email="viewer@example.com", password="view123", tenant=tenant
    )
    viewer_role = Role.objects.get(tenant=tenant, name="Viewer")
    u.roles.add(viewer_role)
    return u


@pytest.fixture
def reference_date():
    """Fixed "today" for renewal windows."""
    return date(2025, 1, 1)


@pytest.fixture
def make_contract(db, tenant):
    """Factory for persisted contracts with sensible defaults."""

    def _make(**kwargs):
        defaults = {
            "name": "Acme Cloud Storage",
            "client": "Acme",
            "value": Decimal("120000"),
            "start_date": date(2024, 1, 1),
            "end_date": date(2025, 1, 21),
            "status": Contract.Status.ACTIVE,
            "provider_type": Contract.MARKETPLACE_PROVIDER_TYPE,
        }
        defaults.update(kwargs)
        return Contract.objects.create(tenant=tenant, **defaults)

    return _make
