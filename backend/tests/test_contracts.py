"""Tests for contract models, contract GraphQL API and document handling."""
import base64
from datetime import date
from decimal import Decimal
from unittest.mock import Mock

import pytest
from django.core.exceptions import ValidationError

from apps.contracts.models import Contract, ContractDocument, describe_length
from apps.core.auth import create_access_token
from apps.core.context import Context
from apps.invoices.models import Invoice
from apps.marketplace.models import MarketplaceIntegration, MarketplaceProduct
from config.schema import schema

REFERENCE = date(2025, 1, 1)


def run_graphql(query, variables, context):
    """Helper to run GraphQL queries synchronously."""
    return schema.execute_sync(query, variable_values=variables, context_value=context)


def make_context(user=None, reference_date=REFERENCE):
    """Create a proper Context object for GraphQL testing."""
    request = Mock()
    return Context(request=request, user=user, reference_date=reference_date)


class TestContractModel:
    """Tests for derived contract values and validation."""

    @pytest.mark.parametrize(
        "start,end,expected",
        [
            (date(2024, 1, 1), date(2025, 1, 1), "1 year"),
            (date(2024, 1, 1), date(2026, 1, 1), "2 years"),
            (date(2024, 1, 1), date(2025, 7, 1), "18 months"),
            (date(2024, 1, 1), date(2024, 2, 1), "1 month"),
            (date(2024, 1, 1), date(2024, 1, 16), "15 days"),
        ],
    )
    def test_length(self, start, end, expected):
        assert describe_length(start, end) == expected

    def test_length_property(self):
        contract = Contract(start_date=date(2024, 1, 1), end_date=date(2025, 1, 1))

        assert contract.length == "1 year"

    def test_end_before_start_invalid(self, tenant):
        contract = Contract(
            tenant=tenant,
            name="Backwards",
            client="Acme",
            value=Decimal("100"),
            start_date=date(2025, 1, 1),
            end_date=date(2024, 1, 1),
        )

        with pytest.raises(ValidationError) as exc_info:
            contract.full_clean()

        assert "end_date" in exc_info.value.message_dict

    def test_negative_value_invalid(self, tenant):
        contract = Contract(
            tenant=tenant,
            name="Negative",
            client="Acme",
            value=Decimal("-1"),
            start_date=date(2024, 1, 1),
            end_date=date(2025, 1, 1),
        )

        with pytest.raises(ValidationError):
            contract.full_clean()

    def test_is_marketplace(self):
        assert Contract(provider_type="SaaS/Marketplace").is_marketplace is True
        assert Contract(provider_type="SaaS/Original Vendor").is_marketplace is False

    def test_invoiced_and_remaining(self, tenant, make_contract):
        contract = make_contract(value=Decimal("1000"))
        Invoice.objects.create(tenant=tenant, contract=contract, invoice_number="1", date=REFERENCE, amount=Decimal("250"))
        Invoice.objects.create(tenant=tenant, contract=contract, invoice_number="2", date=REFERENCE, amount=Decimal("100"))

        assert contract.total_invoiced() == Decimal("350")
        assert contract.remaining_amount == Decimal("650")

    def test_delete_keeps_invoices(self, tenant, make_contract):
        contract = make_contract()
        invoice = Invoice.objects.create(
            tenant=tenant, contract=contract, invoice_number="1", date=REFERENCE, amount=Decimal("10")
        )

        contract.delete()
        invoice.refresh_from_db()

        assert invoice.contract is None


CONTRACTS_QUERY = """
    query Contracts($search: String, $status: String, $providerType: String) {
        contracts(search: $search, status: $status, providerType: $providerType) {
            id
            name
            client
            status
            length
            isMarketplace
        }
    }
"""

CREATE_CONTRACT = """
    mutation CreateContract($input: CreateContractInput!) {
        createContract(input: $input) {
            success
            error
            contract { id name client status providerType length }
        }
    }
"""


class TestContractQueries:
    """Tests for listing and filtering contracts."""

    def test_list_and_search(self, user, make_contract):
        make_contract(name="Acme Cloud Storage", client="Acme")
        make_contract(name="Beta CRM", client="Beta")

        result = run_graphql(CONTRACTS_QUERY, {"search": "beta"}, make_context(user))

        assert result.errors is None
        assert [c["name"] for c in result.data["contracts"]] == ["Beta CRM"]

    def test_filter_by_status_and_provider_type(self, user, make_contract):
        make_contract(name="Active Marketplace")
        make_contract(name="Pending", status=Contract.Status.PENDING)
        make_contract(name="Vendor", provider_type=Contract.DEFAULT_PROVIDER_TYPE)

        result = run_graphql(
            CONTRACTS_QUERY,
            {"status": "active", "providerType": "SaaS/Marketplace"},
            make_context(user),
        )

        assert [c["name"] for c in result.data["contracts"]] == ["Active Marketplace"]
        assert result.data["contracts"][0]["isMarketplace"] is True

    def test_other_tenant_contracts_hidden(self, user, make_contract):
        from apps.tenants.models import Tenant

        other = Tenant.objects.create(name="Other Co")
        Contract.objects.create(
            tenant=other, name="Secret", client="X", value=Decimal("1"),
            start_date=date(2024, 1, 1), end_date=date(2025, 1, 1),
        )

        result = run_graphql(CONTRACTS_QUERY, {}, make_context(user))

        assert result.data["contracts"] == []

    def test_requires_authentication(self, db):
        result = run_graphql(CONTRACTS_QUERY, {}, make_context())

        assert result.errors is not None
        assert "Authentication required" in result.errors[0].message


class TestContractMutations:
    """Tests for creating, updating and deleting contracts."""

    def contract_input(self, **overrides):
        data = {
            "name": "Acme Cloud Storage",
            "client": "Acme",
            "value": "120000",
            "startDate": "2024-01-01",
            "endDate": "2025-01-01",
            "providerType": "SaaS/Marketplace",
        }
        data.update(overrides)
        return data

    def test_create(self, user):
        result = run_graphql(CREATE_CONTRACT, {"input": self.contract_input()}, make_context(user))

        assert result.errors is None
        payload = result.data["createContract"]
        assert payload["success"] is True
        assert payload["contract"]["status"] == "active"
        assert payload["contract"]["length"] == "1 year"
        assert Contract.objects.get().value == Decimal("120000")

    def test_create_rejects_end_before_start(self, user):
        result = run_graphql(
            CREATE_CONTRACT,
            {"input": self.contract_input(endDate="2023-12-31")},
            make_context(user),
        )

        payload = result.data["createContract"]
        assert payload["success"] is False
        assert "End date must be after start date" in payload["error"]
        assert Contract.objects.count() == 0

    def test_create_rejects_unknown_status(self, user):
        result = run_graphql(
            CREATE_CONTRACT,
            {"input": self.contract_input(status="archived")},
            make_context(user),
        )

        assert result.data["createContract"]["success"] is False

    def test_viewer_cannot_create(self, viewer_user):
        result = run_graphql(CREATE_CONTRACT, {"input": self.contract_input()}, make_context(viewer_user))

        assert result.data["createContract"]["error"] == "Permission denied"

    def test_update(self, user, make_contract):
        contract = make_contract()
        mutation = """
            mutation Update($input: UpdateContractInput!) {
                updateContract(input: $input) { success error contract { status notes } }
            }
        """

        result = run_graphql(
            mutation,
            {"input": {"id": str(contract.id), "status": "expired", "notes": "Not renewing"}},
            make_context(user),
        )

        assert result.data["updateContract"]["success"] is True
        contract.refresh_from_db()
        assert contract.status == Contract.Status.EXPIRED
        assert contract.notes == "Not renewing"

    def test_delete(self, user, make_contract):
        contract = make_contract()
        mutation = """
            mutation Delete($id: ID!) { deleteContract(contractId: $id) { success error } }
        """

        result = run_graphql(mutation, {"id": str(contract.id)}, make_context(user))

        assert result.data["deleteContract"]["success"] is True
        assert not Contract.objects.filter(id=contract.id).exists()

    def test_delete_unknown(self, user):
        mutation = """
            mutation Delete($id: ID!) { deleteContract(contractId: $id) { success error } }
        """

        result = run_graphql(mutation, {"id": "999999"}, make_context(user))

        assert result.data["deleteContract"]["error"] == "Contract not found"


RENEWALS_QUERY = """
    query Renewals($horizonDays: Int, $urgency: String, $sortBy: String!) {
        renewalCandidates(horizonDays: $horizonDays, urgency: $urgency, sortBy: $sortBy) {
            daysLeft
            urgency
            hasAwsOptimization
            contract { name }
        }
    }
"""


class TestRenewalQueries:
    """Tests for renewal windows exposed through GraphQL."""

    @pytest.fixture
    def contracts(self, make_contract):
        return [
            make_contract(name="Soon", end_date=date(2025, 1, 25)),
            make_contract(name="Later", end_date=date(2025, 2, 15), value=Decimal("500000")),
            make_contract(name="Far", end_date=date(2025, 6, 1)),
            make_contract(name="Today", end_date=REFERENCE),
            make_contract(name="Inactive", end_date=date(2025, 1, 10), status=Contract.Status.EXPIRED),
        ]

    def test_candidates_sorted_by_expiration(self, user, contracts):
        result = run_graphql(RENEWALS_QUERY, {"sortBy": "expiration"}, make_context(user))

        assert result.errors is None
        rows = result.data["renewalCandidates"]
        assert [r["contract"]["name"] for r in rows] == ["Today", "Soon", "Later"]
        assert [r["daysLeft"] for r in rows] == [0, 24, 45]
        assert [r["urgency"] for r in rows] == ["high", "high", "medium"]

    def test_candidates_filtered_by_urgency(self, user, contracts):
        result = run_graphql(
            RENEWALS_QUERY, {"sortBy": "value", "urgency": "medium"}, make_context(user)
        )

        assert [r["contract"]["name"] for r in result.data["renewalCandidates"]] == ["Later"]

    def test_tenant_renewal_window_override(self, user, tenant, contracts):
        tenant.renewal_window_days = 30
        tenant.save()
        user.tenant.refresh_from_db()

        result = run_graphql(RENEWALS_QUERY, {"sortBy": "expiration"}, make_context(user))

        assert [r["contract"]["name"] for r in result.data["renewalCandidates"]] == ["Today", "Soon"]

    def test_invalid_sort(self, user, contracts):
        result = run_graphql(RENEWALS_QUERY, {"sortBy": "name"}, make_context(user))

        assert result.errors is not None

    def test_optimization_hint_from_synced_products(self, user, tenant, contracts):
        integration = MarketplaceIntegration.objects.create(tenant=tenant, account_name="Prod")
        MarketplaceProduct.objects.create(
            tenant=tenant,
            integration=integration,
            product_id="p1",
            product_name="Acme Cloud Storage Pro",
            vendor="Acme Corp",
            monthly_cost=Decimal("100"),
        )

        result = run_graphql(RENEWALS_QUERY, {"sortBy": "expiration"}, make_context(user))

        rows = result.data["renewalCandidates"]
        assert len(rows) == 3
        assert all(r["hasAwsOptimization"] for r in rows)

    def test_expiring_contracts_default_horizon(self, user, contracts):
        query = "query { expiringContracts { daysLeft contract { name } } }"

        result = run_graphql(query, {}, make_context(user))

        assert [r["contract"]["name"] for r in result.data["expiringContracts"]] == ["Today", "Soon"]

    def test_summary(self, user, contracts):
        query = "query { renewalSummary { high medium withOptimization total } }"

        result = run_graphql(query, {}, make_context(user))

        assert result.data["renewalSummary"] == {
            "high": 2,
            "medium": 1,
            "withOptimization": 0,
            "total": 3,
        }


UPLOAD_DOCUMENT = """
    mutation Upload($input: UploadDocumentInput!) {
        uploadContractDocument(input: $input) {
            success
            error
            document { id originalFilename fileSize downloadUrl }
            contract { id name client status endDate providerType length }
        }
    }
"""


class TestContractDocuments:
    """Tests for uploading, downloading and deleting contract documents."""

    def upload_input(self, filename="Acme Order Form.pdf", content=b"%PDF-1.4 test", **extra):
        return {
            "fileContent": base64.b64encode(content).decode(),
            "filename": filename,
            "contentType": "application/pdf",
            **extra,
        }

    def test_upload_without_contract_creates_placeholder(self, user):
        result = run_graphql(UPLOAD_DOCUMENT, {"input": self.upload_input()}, make_context(user))

        assert result.errors is None
        payload = result.data["uploadContractDocument"]
        assert payload["success"] is True
        assert payload["contract"] == {
            "id": payload["contract"]["id"],
            "name": "Acme Order Form",
            "client": "Unknown",
            "status": "pending",
            "endDate": "2026-01-01",
            "providerType": "SaaS/Original Vendor",
            "length": "1 year",
        }
        contract = Contract.objects.get()
        assert contract.value == Decimal("0")
        assert contract.start_date == REFERENCE
        assert payload["document"]["fileSize"] == len(b"%PDF-1.4 test")

    def test_upload_to_existing_contract(self, user, make_contract):
        contract = make_contract()

        result = run_graphql(
            UPLOAD_DOCUMENT,
            {"input": self.upload_input(contractId=str(contract.id))},
            make_context(user),
        )

        assert result.data["uploadContractDocument"]["success"] is True
        assert Contract.objects.count() == 1
        assert contract.documents.count() == 1

    def test_rejects_disallowed_extension(self, user):
        result = run_graphql(
            UPLOAD_DOCUMENT, {"input": self.upload_input(filename="run.exe")}, make_context(user)
        )

        assert result.data["uploadContractDocument"]["error"] == "File type .exe not allowed"
        assert Contract.objects.count() == 0

    def test_rejects_invalid_base64(self, user):
        data = self.upload_input()
        data["fileContent"] = "not base64!!"

        result = run_graphql(UPLOAD_DOCUMENT, {"input": data}, make_context(user))

        assert result.data["uploadContractDocument"]["error"] == "Invalid base64 file content"

    def test_download(self, client, user):
        run_graphql(UPLOAD_DOCUMENT, {"input": self.upload_input()}, make_context(user))
        document = ContractDocument.objects.get()

        response = client.get(
            f"/api/documents/{document.id}/download/",
            HTTP_AUTHORIZATION=f"Bearer {create_access_token(user)}",
        )

        assert response.status_code == 200
        assert b"".join(response.streaming_content) == b"%PDF-1.4 test"
        assert 'filename="Acme Order Form.pdf"' in response["Content-Disposition"]

    def test_download_requires_auth(self, client, user):
        run_graphql(UPLOAD_DOCUMENT, {"input": self.upload_input()}, make_context(user))
        document = ContractDocument.objects.get()

        response = client.get(f"/api/documents/{document.id}/download/")

        assert response.status_code == 401

    def test_delete_document_keeps_contract(self, user):
        run_graphql(UPLOAD_DOCUMENT, {"input": self.upload_input()}, make_context(user))
        document = ContractDocument.objects.get()
        mutation = "mutation Delete($id: ID!) { deleteContractDocument(documentId: $id) { success error } }"

        result = run_graphql(mutation, {"id": str(document.id)}, make_context(user))

        assert result.data["deleteContractDocument"]["success"] is True
        assert ContractDocument.objects.count() == 0
        assert Contract.objects.count() == 1
