"""GraphQL schema for invoices."""

import datetime
from decimal import Decimal
from typing import List

import strawberry
import strawberry_django
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from strawberry import auto
from strawberry.types import Info

from apps.contracts.models import Contract
from apps.core.context import Context
from apps.core.permissions import check_perm, require_perm
from apps.core.schema import DeleteResult
from .models import Invoice


@strawberry_django.type(Invoice)
class InvoiceType:
    """An invoice billed against a contract."""

    id: auto
    invoice_number: auto
    date: auto
    amount: auto
    status: auto
    notes: auto
    created_at: auto

    @strawberry.field
    def contract_id(self) -> strawberry.ID | None:
        return self.contract_id

    @strawberry.field
    def contract_name(self) -> str | None:
        return self.contract.name if self.contract else None


@strawberry.input
class CreateInvoiceInput:
    contract_id: strawberry.ID
    invoice_number: str
    date: datetime.date
    amount: Decimal
    status: str = "pending"
    notes: str = ""


@strawberry.input
class UpdateInvoiceInput:
    id: strawberry.ID
    invoice_number: str | None = None
    date: datetime.date | None = None
    amount: Decimal | None = None
    status: str | None = None
    notes: str | None = None


@strawberry.type
class InvoiceResult:
    invoice: InvoiceType | None = None
    success: bool = False
    error: str | None = None


DUPLICATE_NUMBER_ERROR = "Invoice number already exists for this contract"


def _save_invoice(invoice: Invoice) -> str | None:
    """Validate and save; returns an error message on failure."""
    if invoice.contract_id and Invoice.number_taken(
        invoice.contract_id, invoice.invoice_number, exclude_id=invoice.pk
    ):
        return DUPLICATE_NUMBER_ERROR
    try:
        invoice.full_clean(validate_constraints=False)
        with transaction.atomic():
            invoice.save()
    except ValidationError as e:
        return "; ".join(
            f"{field}: {' '.join(messages)}" for field, messages in e.message_dict.items()
        )
    except IntegrityError:
        return DUPLICATE_NUMBER_ERROR
    return None


@strawberry.type
class InvoiceQuery:
    """Invoice-related queries."""

    @strawberry.field
    def invoices(
        self,
        info: Info[Context, None],
        contract_id: strawberry.ID | None = None,
        status: str | None = None,
    ) -> List[InvoiceType]:
        """Get invoices, optionally for one contract or status."""
        user = require_perm(info, "invoices", "read")
        if not user.tenant:
            return []

        queryset = Invoice.objects.for_tenant(user.tenant).select_related("contract")
        if contract_id:
            queryset = queryset.filter(contract_id=contract_id)
        if status:
            queryset = queryset.filter(status=status)
        return list(queryset)

    @strawberry.field
    def invoice(self, info: Info[Context, None], id: strawberry.ID) -> InvoiceType | None:
        user = require_perm(info, "invoices", "read")
        if user.tenant:
            return Invoice.objects.for_tenant(user.tenant).filter(id=id).first()
        return None

    @strawberry.field
    def invoice_number_available(
        self,
        info: Info[Context, None],
        contract_id: strawberry.ID,
        invoice_number: str,
        exclude_id: strawberry.ID | None = None,
    ) -> bool:
        """Whether an invoice number is still free within a contract."""
        require_perm(info, "invoices", "read")
        return not Invoice.number_taken(contract_id, invoice_number, exclude_id=exclude_id)


@strawberry.type
class InvoiceMutation:
    """Invoice mutations."""

    @strawberry.mutation
    def create_invoice(
        self, info: Info[Context, None], input: CreateInvoiceInput
    ) -> InvoiceResult:
        """Record an invoice for a contract."""
        user, err = check_perm(info, "invoices", "write")
        if err:
            return InvoiceResult(error=err)
        if not user.tenant:
            return InvoiceResult(error="No tenant assigned")

        # Verify contract belongs to tenant
        contract = Contract.objects.for_tenant(user.tenant).filter(id=input.contract_id).first()
        if not contract:
            return InvoiceResult(error="Contract not found")

        invoice = Invoice(
            tenant=user.tenant,
            contract=contract,
            invoice_number=input.invoice_number.strip(),
            date=input.date,
            amount=input.amount,
            status=input.status,
            notes=input.notes,
        )
        error = _save_invoice(invoice)
        if error:
            return InvoiceResult(error=error)
        return InvoiceResult(invoice=invoice, success=True)

    @strawberry.mutation
    def update_invoice(
        self, info: Info[Context, None], input: UpdateInvoiceInput
    ) -> InvoiceResult:
        """Update an existing invoice."""
        user, err = check_perm(info, "invoices", "write")
        if err:
            return InvoiceResult(error=err)
        if not user.tenant:
            return InvoiceResult(error="No tenant assigned")

        invoice = Invoice.objects.for_tenant(user.tenant).filter(id=input.id).first()
        if not invoice:
            return InvoiceResult(error="Invoice not found")

        if input.invoice_number is not None:
            invoice.invoice_number = input.invoice_number.strip()
        if input.date is not None:
            invoice.date = input.date
        if input.amount is not None:
            invoice.amount = input.amount
        if input.status is not None:
            invoice.status = input.status
        if input.notes is not None:
            invoice.notes = input.notes

        error = _save_invoice(invoice)
        if error:
            return InvoiceResult(error=error)
        return InvoiceResult(invoice=invoice, success=True)

    @strawberry.mutation
    def delete_invoice(
        self, info: Info[Context, None], invoice_id: strawberry.ID
    ) -> DeleteResult:
        """Delete an invoice."""
        user, err = check_perm(info, "invoices", "delete")
        if err:
            return DeleteResult(error=err)
        if not user.tenant:
            return DeleteResult(error="No tenant assigned")

        invoice = Invoice.objects.for_tenant(user.tenant).filter(id=invoice_id).first()
        if not invoice:
            return DeleteResult(error="Invoice not found")

        invoice.delete()
        return DeleteResult(success=True)
