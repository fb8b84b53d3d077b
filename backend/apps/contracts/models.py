"""Contract models."""
import os
import uuid
from datetime import date
from decimal import Decimal

from dateutil.relativedelta import relativedelta
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Sum

from apps.core.models import TenantModel


def contract_document_upload_path(instance, filename):
    """Upload path: uploads/{tenant_id}/contracts/{uuid}{ext}"""
    ext = os.path.splitext(filename)[1]
    return f"uploads/{instance.tenant_id}/contracts/{uuid.uuid4().hex}{ext}"


def describe_length(start_date: date, end_date: date) -> str:
    """Human readable contract length, e.g. "1 year", "18 months", "45 days"."""
    delta = relativedelta(end_date, start_date)
    months = delta.years * 12 + delta.months
    if months == 0:
        days = (end_date - start_date).days
        return f"{days} day{'s' if days != 1 else ''}"
    if months % 12 == 0 and delta.days == 0:
        years = months // 12
        return f"{years} year{'s' if years != 1 else ''}"
    return f"{months} month{'s' if months != 1 else ''}"


class Contract(TenantModel):
    """A contract with a client or vendor."""

    MARKETPLACE_PROVIDER_TYPE = "SaaS/Marketplace"
    DEFAULT_PROVIDER_TYPE = "SaaS/Original Vendor"

    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        EXPIRED = "expired", "Expired"
        PENDING = "pending", "Pending"

    name = models.CharField(max_length=255)
    client = models.CharField(
        max_length=255,
        help_text="Client or vendor the contract is held with",
    )
    value = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0"),
        validators=[MinValueValidator(Decimal("0"))],
        help_text="Total contract value",
    )
    start_date = models.DateField()
    end_date = models.DateField()
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ACTIVE,
    )
    provider_type = models.CharField(
        max_length=100,
        blank=True,
        default=DEFAULT_PROVIDER_TYPE,
        help_text='Procurement channel, "SaaS/Marketplace" marks marketplace-eligible contracts',
    )
    notes = models.TextField(blank=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.name} ({self.client})"

    def clean(self):
        super().clean()
        if self.start_date and self.end_date and self.end_date <= self.start_date:
            raise ValidationError({"end_date": "End date must be after start date"})
        if self.value is not None and self.value < 0:
            raise ValidationError({"value": "Contract value cannot be negative"})

    @property
    def length(self) -> str:
        if not self.start_date or not self.end_date:
            return ""
        return describe_length(self.start_date, self.end_date)

    @property
    def is_marketplace(self) -> bool:
        return self.provider_type == self.MARKETPLACE_PROVIDER_TYPE

    def total_invoiced(self) -> Decimal:
        """Sum of all invoice amounts recorded against this contract."""
        total = self.invoices.aggregate(total=Sum("amount"))["total"]
        return total or Decimal("0")

    @property
    def remaining_amount(self) -> Decimal:
        return self.value - self.total_invoiced()


class ContractDocument(TenantModel):
    """A document uploaded for a contract."""

    contract = models.ForeignKey(
        Contract,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="documents",
    )
    file = models.FileField(upload_to=contract_document_upload_path)
    original_filename = models.CharField(
        max_length=255,
        help_text="Original filename as uploaded by user",
    )
    file_size = models.PositiveIntegerField(
        help_text="File size in bytes",
    )
    content_type = models.CharField(
        max_length=100,
        help_text="MIME type of the file",
    )
    uploaded_by = models.ForeignKey(
        "tenants.User",
        on_delete=models.SET_NULL,
        null=True,
        related_name="uploaded_contract_documents",
    )

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return self.original_filename

    def delete(self, *args, **kwargs):
        """Delete the file from storage when the model is deleted."""
        if self.file:
            self.file.delete(save=False)
        super().delete(*args, **kwargs)
