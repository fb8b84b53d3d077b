"""GraphQL schema for contracts."""

import base64
import binascii
import logging
import os
from datetime import date, datetime
from decimal import Decimal
from typing import List

import strawberry
import strawberry_django
from auditlog.models import LogEntry
from dateutil.relativedelta import relativedelta
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.files.base import ContentFile
from django.db import transaction
from django.db.models import Q
from strawberry import auto
from strawberry.types import Info

from apps.core.context import Context
from apps.core.permissions import check_perm, require_perm
from apps.core.schema import DeleteResult
from apps.marketplace.models import MarketplaceProduct
from .models import Contract, ContractDocument
from .services import (
    RenewalSort,
    Urgency,
    classify_renewals,
    sort_candidates,
    summarize_renewals,
)

logger = logging.getLogger(__name__)


@strawberry.type
class ContractDocumentType:
    """A file uploaded for a contract."""

    id: int
    original_filename: str
    file_size: int
    content_type: str
    uploaded_at: datetime
    uploaded_by_name: str | None
    download_url: str


def _document_type(document: ContractDocument) -> ContractDocumentType:
    return ContractDocumentType(
        id=document.id,
        original_filename=document.original_filename,
        file_size=document.file_size,
        content_type=document.content_type,
        uploaded_at=document.created_at,
        uploaded_by_name=document.uploaded_by.email if document.uploaded_by else None,
        download_url=f"/api/documents/{document.id}/download/",
    )


@strawberry_django.type(Contract)
class ContractType:
    """A contract with a client or vendor."""

    id: auto
    name: auto
    client: auto
    value: auto
    start_date: auto
    end_date: auto
    status: auto
    provider_type: auto
    notes: auto
    created_at: auto
    updated_at: auto

    @strawberry.field
    def length(self) -> str:
        """Contract length derived from start and end date."""
        return self.length

    @strawberry.field
    def is_marketplace(self) -> bool:
        return self.is_marketplace

    @strawberry.field
    def total_invoiced(self) -> Decimal:
        return self.total_invoiced()

    @strawberry.field
    def remaining_amount(self) -> Decimal:
        return self.remaining_amount

    @strawberry.field
    def documents(self) -> List[ContractDocumentType]:
        """Get all documents for this contract."""
        documents = ContractDocument.objects.filter(contract=self).select_related("uploaded_by")
        return [_document_type(d) for d in documents]

    @strawberry.field
    def last_modified_by(self) -> str | None:
        """Email of the user behind the most recent change."""
        entry = (
            LogEntry.objects.get_for_object(self)
            .filter(actor__isnull=False)
            .select_related("actor")
            .order_by("-timestamp")
            .first()
        )
        return entry.actor.email if entry else None


@strawberry.type
class RenewalCandidateType:
    """A contract approaching its end date."""

    contract: ContractType
    days_left: int
    urgency: str
    has_aws_optimization: bool


@strawberry.type
class RenewalSummaryType:
    high: int
    medium: int
    with_optimization: int
    total: int


# Input types for mutations
@strawberry.input
class CreateContractInput:
    name: str
    client: str
    value: Decimal
    start_date: date
    end_date: date
    status: str = "active"
    provider_type: str = Contract.DEFAULT_PROVIDER_TYPE
    notes: str = ""


@strawberry.input
class UpdateContractInput:
    id: strawberry.ID
    name: str | None = None
    client: str | None = None
    value: Decimal | None = None
    start_date: date | None = None
    end_date: date | None = None
    status: str | None = None
    provider_type: str | None = None
    notes: str | None = None


@strawberry.input
class UploadDocumentInput:
    """Input for uploading a contract document.

    Without ``contract_id`` a pending placeholder contract is created from the file name.
    """

    file_content: str  # Base64-encoded file content
    filename: str
    content_type: str
    contract_id: strawberry.ID | None = None


# Result types for mutations
@strawberry.type
class ContractResult:
    contract: ContractType | None = None
    success: bool = False
    error: str | None = None


@strawberry.type
class DocumentResult:
    document: ContractDocumentType | None = None
    contract: ContractType | None = None
    success: bool = False
    error: str | None = None


def _validation_message(e: ValidationError) -> str:
    if hasattr(e, "message_dict"):
        return "; ".join(
            f"{field}: {' '.join(messages)}" for field, messages in e.message_dict.items()
        )
    return " ".join(e.messages)


def _synced_products(tenant):
    return [
        p.to_external_product()
        for p in MarketplaceProduct.objects.filter(
            tenant=tenant,
            status=MarketplaceProduct.Status.ACTIVE,
        )
    ]


def _renewal_candidates(info: Info[Context, None], user, horizon_days: int):
    contracts = Contract.objects.filter(tenant=user.tenant, status=Contract.Status.ACTIVE)
    return classify_renewals(
        contracts,
        info.context.reference_date,
        horizon_days,
        _synced_products(user.tenant),
    )


@strawberry.type
class ContractQuery:
    @strawberry.field
    def contracts(
        self,
        info: Info[Context, None],
        search: str | None = None,
        status: str | None = None,
        provider_type: str | None = None,
    ) -> List[ContractType]:
        """Get contracts with optional filtering."""
        user = require_perm(info, "contracts", "read")
        if not user.tenant:
            return []

        queryset = Contract.objects.filter(tenant=user.tenant)

        # Search filter (by contract name or client)
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) | Q(client__icontains=search)
            )
        if status:
            queryset = queryset.filter(status=status)
        if provider_type:
            queryset = queryset.filter(provider_type=provider_type)

        return list(queryset.order_by("end_date", "name"))

    @strawberry.field
    def contract(
        self, info: Info[Context, None], id: strawberry.ID
    ) -> ContractType | None:
        """Get a single contract by ID."""
        user = require_perm(info, "contracts", "read")
        if user.tenant:
            return Contract.objects.filter(tenant=user.tenant, id=id).first()
        return None

    @strawberry.field
    def expiring_contracts(
        self,
        info: Info[Context, None],
        horizon_days: int | None = None,
    ) -> List[RenewalCandidateType]:
        """Active contracts ending soon, soonest first."""
        user = require_perm(info, "contracts", "read")
        if not user.tenant:
            return []

        horizon = horizon_days if horizon_days is not None else settings.EXPIRING_SOON_DAYS
        candidates = _renewal_candidates(info, user, horizon)
        return sort_candidates(candidates, RenewalSort.EXPIRATION)

    @strawberry.field
    def renewal_candidates(
        self,
        info: Info[Context, None],
        horizon_days: int | None = None,
        urgency: str | None = None,
        sort_by: str = "expiration",
    ) -> List[RenewalCandidateType]:
        """Contracts in the renewal window with urgency and marketplace hints."""
        user = require_perm(info, "contracts", "read")
        if not user.tenant:
            return []

        try:
            sort_by = RenewalSort(sort_by)
            urgency = Urgency(urgency) if urgency else None
        except ValueError as e:
            raise ValueError(f"Invalid renewal filter: {e}") from e

        horizon = horizon_days if horizon_days is not None else user.tenant.renewal_window
        candidates = _renewal_candidates(info, user, horizon)
        if urgency:
            candidates = [c for c in candidates if c.urgency == urgency]
        return sort_candidates(candidates, sort_by)

    @strawberry.field
    def renewal_summary(
        self,
        info: Info[Context, None],
        horizon_days: int | None = None,
    ) -> RenewalSummaryType:
        """Counts of contracts in the renewal window by urgency."""
        user = require_perm(info, "contracts", "read")
        if not user.tenant:
            return RenewalSummaryType(high=0, medium=0, with_optimization=0, total=0)

        horizon = horizon_days if horizon_days is not None else user.tenant.renewal_window
        summary = summarize_renewals(_renewal_candidates(info, user, horizon))
        return RenewalSummaryType(
            high=summary.high,
            medium=summary.medium,
            with_optimization=summary.with_optimization,
            total=summary.total,
        )


@strawberry.type
class ContractMutation:
    @strawberry.mutation
    def create_contract(
        self, info: Info[Context, None], input: CreateContractInput
    ) -> ContractResult:
        """Create a new contract."""
        user, err = check_perm(info, "contracts", "write")
        if err:
            return ContractResult(error=err)
        if not user.tenant:
            return ContractResult(error="No tenant assigned")

        contract = Contract(
            tenant=user.tenant,
            name=input.name.strip(),
            client=input.client.strip(),
            value=input.value,
            start_date=input.start_date,
            end_date=input.end_date,
            status=input.status,
            provider_type=input.provider_type,
            notes=input.notes,
        )
        try:
            contract.full_clean()
            contract.save()
        except ValidationError as e:
            return ContractResult(error=_validation_message(e))

        logger.info("Contract %s created by %s", contract.id, user.email)
        return ContractResult(contract=contract, success=True)

    @strawberry.mutation
    def update_contract(
        self, info: Info[Context, None], input: UpdateContractInput
    ) -> ContractResult:
        """Update an existing contract."""
        user, err = check_perm(info, "contracts", "write")
        if err:
            return ContractResult(error=err)
        if not user.tenant:
            return ContractResult(error="No tenant assigned")

        contract = Contract.objects.filter(
            tenant=user.tenant, id=input.id
        ).first()
        if not contract:
            return ContractResult(error="Contract not found")

        for field in (
            "name",
            "client",
            "value",
            "start_date",
            "end_date",
            "status",
            "provider_type",
            "notes",
        ):
            value = getattr(input, field)
            if value is not None:
                setattr(contract, field, value)

        try:
            contract.full_clean()
            contract.save()
        except ValidationError as e:
            return ContractResult(error=_validation_message(e))

        return ContractResult(contract=contract, success=True)

    @strawberry.mutation
    def delete_contract(
        self,
        info: Info[Context, None],
        contract_id: strawberry.ID,
    ) -> DeleteResult:
        """Delete a contract. Its invoices and documents are kept, unlinked."""
        user, err = check_perm(info, "contracts", "delete")
        if err:
            return DeleteResult(error=err)
        if not user.tenant:
            return DeleteResult(error="No tenant assigned")

        contract = Contract.objects.filter(
            tenant=user.tenant, id=contract_id
        ).first()
        if not contract:
            return DeleteResult(error="Contract not found")

        contract.delete()
        logger.info("Contract %s deleted by %s", contract_id, user.email)
        return DeleteResult(success=True)

    # =========================================================================
    # Contract Document Mutations
    # =========================================================================

    @strawberry.mutation
    def upload_contract_document(
        self,
        info: Info[Context, None],
        input: UploadDocumentInput,
    ) -> DocumentResult:
        """Upload a document, attached to an existing contract or to a new placeholder contract."""
        user, err = check_perm(info, "contracts", "write")
        if err:
            return DocumentResult(error=err)
        if not user.tenant:
            return DocumentResult(error="No tenant assigned")

        contract = None
        if input.contract_id:
            contract = Contract.objects.filter(
                tenant=user.tenant, id=input.contract_id
            ).first()
            if not contract:
                return DocumentResult(error="Contract not found")

        # Validate filename extension
        name, ext = os.path.splitext(input.filename)
        if ext.lower() not in settings.ALLOWED_ATTACHMENT_EXTENSIONS:
            return DocumentResult(error=f"File type {ext.lower()} not allowed")

        # Decode and validate file size
        try:
            file_bytes = base64.b64decode(input.file_content, validate=True)
        except (binascii.Error, ValueError):
            return DocumentResult(error="Invalid base64 file content")

        file_size = len(file_bytes)
        if file_size > settings.MAX_UPLOAD_SIZE:
            max_mb = settings.MAX_UPLOAD_SIZE / (1024 * 1024)
            return DocumentResult(error=f"File too large. Maximum size is {max_mb:.0f}MB")

        with transaction.atomic():
            if contract is None:
                today = info.context.reference_date
                contract = Contract.objects.create(
                    tenant=user.tenant,
                    name=name or input.filename,
                    client="Unknown",
                    value=Decimal("0"),
                    start_date=today,
                    end_date=today + relativedelta(years=1),
                    status=Contract.Status.PENDING,
                    provider_type=Contract.DEFAULT_PROVIDER_TYPE,
                )
                logger.info("Created placeholder contract %s for document %s", contract.id, input.filename)

            document = ContractDocument(
                tenant=user.tenant,
                contract=contract,
                original_filename=input.filename,
                file_size=file_size,
                content_type=input.content_type,
                uploaded_by=user,
            )
            document.file.save(input.filename, ContentFile(file_bytes), save=True)

        return DocumentResult(
            document=_document_type(document),
            contract=contract,
            success=True,
        )

    @strawberry.mutation
    def delete_contract_document(
        self,
        info: Info[Context, None],
        document_id: strawberry.ID,
    ) -> DeleteResult:
        """Delete a contract document."""
        user, err = check_perm(info, "contracts", "delete")
        if err:
            return DeleteResult(error=err)
        if not user.tenant:
            return DeleteResult(error="No tenant assigned")

        document = ContractDocument.objects.filter(
            tenant=user.tenant, id=document_id
        ).first()
        if not document:
            return DeleteResult(error="Document not found")

        document.delete()  # Will also delete the file from storage
        return DeleteResult(success=True)
