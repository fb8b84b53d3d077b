"""Tests for the marketplace GraphQL API."""
from datetime import date
from decimal import Decimal
from unittest.mock import Mock, patch

import pytest

from apps.core.context import Context
from apps.marketplace.models import MarketplaceIntegration, MarketplaceProduct, MarketplaceSyncLog
from apps.marketplace.services.catalog import ProductSource, RawProductRecord
from apps.marketplace.services.providers import MarketplaceProvider
from apps.tenants.models import Role, User
from config.schema import schema

PROVIDER_PATH = "test_marketplace_graphql.CatalogProvider"


def run_graphql(query, variables, context):
    """Helper to run GraphQL queries synchronously."""
    return schema.execute_sync(query, variable_values=variables, context_value=context)


def make_context(user=None):
    """Create a proper Context object for GraphQL testing."""
    request = Mock()
    return Context(request=request, user=user, reference_date=date(2025, 1, 1))


class CatalogProvider(MarketplaceProvider):
    """Serves a small fixed catalog."""

    def test_connection(self):
        return {"success": True, "permissions": {"marketplace": True}}

    def search(self, query, product_type="All", max_results=10):
        return [
            RawProductRecord(
                ProductSource.CATALOG_ENTITY,
                {
                    "EntityId": "prod-storage",
                    "Name": "Acme Cloud Storage",
                    "Details": {"Vendor": {"Name": "Acme"}},
                    "pricing": {"monthlyCost": "7000"},
                },
            ),
            RawProductRecord(
                ProductSource.CATALOG_ENTITY,
                {"EntityId": "prod-firewall", "Name": "Firewall Suite"},
            ),
        ]

    def list_subscriptions(self):
        return []


class FailingProvider(CatalogProvider):
    def test_connection(self):
        raise RuntimeError("AccessDenied")


@pytest.fixture
def manager_user(db, tenant):
    u = User.objects.create_user(email="manager@example.com", password="mgr123", tenant=tenant)
    u.roles.add(Role.objects.get(tenant=tenant, name="Manager"))
    return u


@pytest.fixture
def integration(tenant):
    return MarketplaceIntegration.objects.create(
        tenant=tenant,
        account_name="Production",
        account_id="123456789012",
        role_arn="arn:aws:iam::123456789012:role/Marketplace",
        connection_status=MarketplaceIntegration.ConnectionStatus.CONNECTED,
    )


CREATE_INTEGRATION = """
    mutation Create($input: CreateMarketplaceIntegrationInput!) {
        createMarketplaceIntegration(input: $input) {
            success
            error
            integration { id accountName connectionStatus connectionError }
        }
    }
"""

TRIGGER_SYNC = """
    mutation Sync($id: ID!) { triggerMarketplaceSync(integrationId: $id) { success error } }
"""


class TestIntegrationMutations:
    """Tests for registering, deleting and syncing integrations."""

    def test_create_without_provider_stays_pending(self, user):
        result = run_graphql(
            CREATE_INTEGRATION,
            {"input": {"accountName": "Prod", "roleArn": "arn:aws:iam::1:role/x"}},
            make_context(user),
        )

        assert result.errors is None
        payload = result.data["createMarketplaceIntegration"]
        assert payload["success"] is True
        assert payload["integration"]["connectionStatus"] == "pending"

    def test_create_tests_connection(self, user, settings):
        settings.MARKETPLACE_PROVIDER_CLASS = PROVIDER_PATH

        result = run_graphql(
            CREATE_INTEGRATION,
            {"input": {"accountName": "Prod", "roleArn": "arn:aws:iam::1:role/x"}},
            make_context(user),
        )

        integration = result.data["createMarketplaceIntegration"]["integration"]
        assert integration["connectionStatus"] == "connected"
        assert MarketplaceIntegration.objects.get().last_connection_test is not None

    def test_create_records_failed_connection(self, user, settings):
        settings.MARKETPLACE_PROVIDER_CLASS = "test_marketplace_graphql.FailingProvider"

        result = run_graphql(
            CREATE_INTEGRATION,
            {"input": {"accountName": "Prod", "roleArn": "arn:aws:iam::1:role/x"}},
            make_context(user),
        )

        integration = result.data["createMarketplaceIntegration"]["integration"]
        assert integration["connectionStatus"] == "failed"
        assert integration["connectionError"] == "AccessDenied"

    def test_iam_role_requires_arn(self, user):
        result = run_graphql(CREATE_INTEGRATION, {"input": {"accountName": "Prod"}}, make_context(user))

        payload = result.data["createMarketplaceIntegration"]
        assert payload["error"] == "Role ARN is required for IAM role connections"
        assert MarketplaceIntegration.objects.count() == 0

    def test_manual_connection_without_arn(self, user):
        result = run_graphql(
            CREATE_INTEGRATION,
            {"input": {"accountName": "Prod", "connectionType": "manual"}},
            make_context(user),
        )

        assert result.data["createMarketplaceIntegration"]["success"] is True

    def test_invalid_connection_type(self, user):
        result = run_graphql(
            CREATE_INTEGRATION,
            {"input": {"accountName": "Prod", "connectionType": "sso"}},
            make_context(user),
        )

        assert result.data["createMarketplaceIntegration"]["error"] == "Invalid connection type: sso"

    def test_manager_cannot_create(self, manager_user):
        result = run_graphql(
            CREATE_INTEGRATION,
            {"input": {"accountName": "Prod", "roleArn": "arn"}},
            make_context(manager_user),
        )

        assert result.data["createMarketplaceIntegration"]["error"] == "Permission denied"

    def test_delete_cascades_products(self, user, tenant, integration):
        MarketplaceProduct.objects.create(
            tenant=tenant, integration=integration, product_id="p1", product_name="Thing"
        )
        mutation = """
            mutation Delete($id: ID!) { deleteMarketplaceIntegration(integrationId: $id) { success } }
        """

        result = run_graphql(mutation, {"id": str(integration.id)}, make_context(user))

        assert result.data["deleteMarketplaceIntegration"]["success"] is True
        assert MarketplaceProduct.objects.count() == 0

    def test_trigger_sync_queues_task(self, manager_user, integration):
        with patch("apps.marketplace.schema.sync_marketplace_products_task.delay") as delay:
            result = run_graphql(TRIGGER_SYNC, {"id": str(integration.id)}, make_context(manager_user))

        assert result.data["triggerMarketplaceSync"]["success"] is True
        delay.assert_called_once_with(integration.id)

    def test_trigger_sync_requires_connection(self, user, integration):
        integration.connection_status = MarketplaceIntegration.ConnectionStatus.FAILED
        integration.save()

        with patch("apps.marketplace.schema.sync_marketplace_products_task.delay") as delay:
            result = run_graphql(TRIGGER_SYNC, {"id": str(integration.id)}, make_context(user))

        assert result.data["triggerMarketplaceSync"]["error"] == "Integration is not connected"
        delay.assert_not_called()

    def test_viewer_cannot_sync(self, viewer_user, integration):
        result = run_graphql(TRIGGER_SYNC, {"id": str(integration.id)}, make_context(viewer_user))

        assert result.data["triggerMarketplaceSync"]["error"] == "Permission denied"


class TestMarketplaceQueries:
    """Tests for integration listing, products, sync logs and live search."""

    def test_integrations_with_counts(self, viewer_user, tenant, integration):
        MarketplaceProduct.objects.create(
            tenant=tenant, integration=integration, product_id="p1", product_name="Thing"
        )
        log = MarketplaceSyncLog.objects.create(tenant=tenant, integration=integration)
        log.mark_completed(1, 0)
        query = "query { marketplaceIntegrations { accountName productCount lastSyncedAt } }"

        result = run_graphql(query, {}, make_context(viewer_user))

        row = result.data["marketplaceIntegrations"][0]
        assert row["accountName"] == "Production"
        assert row["productCount"] == 1
        assert row["lastSyncedAt"] is not None

    def test_products_and_sync_logs(self, viewer_user, tenant, integration):
        MarketplaceProduct.objects.create(
            tenant=tenant,
            integration=integration,
            product_id="p1",
            product_name="Acme Cloud Storage",
            monthly_cost=Decimal("50"),
        )
        MarketplaceSyncLog.objects.create(tenant=tenant, integration=integration).mark_failed("boom")
        query = """
            query {
                marketplaceProducts { productId productName monthlyCost currency }
                syncLogs { status errorMessage integrationId }
            }
        """

        result = run_graphql(query, {}, make_context(viewer_user))

        assert result.errors is None
        product = result.data["marketplaceProducts"][0]
        assert product["productId"] == "p1"
        assert Decimal(product["monthlyCost"]) == Decimal("50")
        assert result.data["syncLogs"] == [
            {"status": "failed", "errorMessage": "boom", "integrationId": str(integration.id)}
        ]

    def test_search(self, viewer_user, integration, settings):
        settings.MARKETPLACE_PROVIDER_CLASS = PROVIDER_PATH
        query = """
            query Search($id: ID!, $q: String!) {
                searchMarketplace(integrationId: $id, query: $q) { productId vendor matchScore marketplaceUrl }
            }
        """

        result = run_graphql(query, {"id": str(integration.id), "q": "cloud storage"}, make_context(viewer_user))

        assert result.errors is None
        rows = result.data["searchMarketplace"]
        assert [r["productId"] for r in rows] == ["prod-storage"]
        assert rows[0]["vendor"] == "Acme"
        assert rows[0]["matchScore"] > 0.3
        assert rows[0]["marketplaceUrl"].endswith("/prod-storage")

    def test_search_without_provider(self, viewer_user, integration):
        query = """
            query Search($id: ID!) { searchMarketplace(integrationId: $id, query: "x") { productId } }
        """

        result = run_graphql(query, {"id": str(integration.id)}, make_context(viewer_user))

        assert "No marketplace provider configured" in result.errors[0].message


OPTIMIZATION = """
    query Optimization($live: Boolean!) {
        marketplaceOptimization(liveSearch: $live) {
            integrationCount
            totalAnnualSavings
            opportunities {
                contract { name }
                matchedProduct { productId }
                currentMonthlyCost
                awsMonthlyCost
                annualSavings
                savingsPercentage
            }
            recommendations { daysLeft urgency bestMatch { productId } searchError }
        }
    }
"""


class TestMarketplaceOptimization:
    """Tests for the savings report resolver."""

    def test_without_integrations(self, user, make_contract):
        make_contract()

        result = run_graphql(OPTIMIZATION, {"live": False}, make_context(user))

        report = result.data["marketplaceOptimization"]
        assert report["integrationCount"] == 0
        assert report["opportunities"] == []
        assert Decimal(report["totalAnnualSavings"]) == Decimal("0")

    def test_synced_products(self, user, tenant, integration, make_contract):
        make_contract()
        MarketplaceProduct.objects.create(
            tenant=tenant,
            integration=integration,
            product_id="prod-storage",
            product_name="Acme Cloud Storage Business",
            vendor="Acme",
            monthly_cost=Decimal("6000"),
        )

        result = run_graphql(OPTIMIZATION, {"live": False}, make_context(user))

        assert result.errors is None
        report = result.data["marketplaceOptimization"]
        opportunity = report["opportunities"][0]
        assert opportunity["matchedProduct"]["productId"] == "prod-storage"
        assert Decimal(opportunity["currentMonthlyCost"]) == Decimal("10000")
        assert Decimal(opportunity["annualSavings"]) == Decimal("48000")
        assert Decimal(opportunity["savingsPercentage"]) == Decimal("40")
        assert Decimal(report["totalAnnualSavings"]) == Decimal("48000")
        assert report["recommendations"][0]["daysLeft"] == 20
        assert report["recommendations"][0]["urgency"] == "high"

    def test_live_search_results(self, user, integration, make_contract, settings):
        settings.MARKETPLACE_PROVIDER_CLASS = PROVIDER_PATH
        make_contract()

        result = run_graphql(OPTIMIZATION, {"live": True}, make_context(user))

        report = result.data["marketplaceOptimization"]
        assert report["recommendations"][0]["bestMatch"] == {"productId": "prod-storage"}
        assert Decimal(report["totalAnnualSavings"]) == Decimal("36000")
