"""Invoice models."""
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models

from apps.core.models import TenantModel


class Invoice(TenantModel):
    """An invoice billed against a contract."""

    class Status(models.TextChoices):
        PAID = "paid", "Paid"
        PENDING = "pending", "Pending"
        OVERDUE = "overdue", "Overdue"

    contract = models.ForeignKey(
        "contracts.Contract",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="invoices",
    )
    invoice_number = models.CharField(max_length=100)
    date = models.DateField()
    amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0"))],
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
    )
    notes = models.TextField(blank=True)

    class Meta:
        ordering = ["-date", "-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["contract", "invoice_number"],
                name="unique_invoice_number_per_contract",
            ),
        ]

    def __str__(self):
        return f"Invoice {self.invoice_number}"

    @classmethod
    def number_taken(cls, contract_id, invoice_number: str, exclude_id=None) -> bool:
        """Check whether an invoice number is already used within a contract."""
        queryset = cls.objects.filter(
            contract_id=contract_id,
            invoice_number=invoice_number.strip(),
        )
        if exclude_id is not None:
            queryset = queryset.exclude(id=exclude_id)
        return queryset.exists()
