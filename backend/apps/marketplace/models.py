"""Marketplace integration models."""
from django.db import models
from django.utils import timezone

from apps.core.models import TenantModel
from apps.marketplace.services.catalog import Availability, ExternalProduct, ProductSource


class MarketplaceIntegration(TenantModel):
    """A connected cloud marketplace account."""

    class ConnectionType(models.TextChoices):
        IAM_ROLE = "iam_role", "IAM Role"
        MANUAL = "manual", "Manual"

    class ConnectionStatus(models.TextChoices):
        PENDING = "pending", "Pending"
        VALIDATING = "validating", "Validating"
        CONNECTED = "connected", "Connected"
        FAILED = "failed", "Failed"

    account_name = models.CharField(max_length=255)
    account_id = models.CharField(max_length=32, blank=True, help_text="Cloud account id")
    aws_region = models.CharField(max_length=32, default="us-east-1")
    connection_type = models.CharField(
        max_length=20,
        choices=ConnectionType.choices,
        default=ConnectionType.IAM_ROLE,
    )
    role_arn = models.CharField(max_length=255, blank=True)
    external_id = models.CharField(max_length=255, blank=True)
    connection_status = models.CharField(
        max_length=20,
        choices=ConnectionStatus.choices,
        default=ConnectionStatus.PENDING,
    )
    permissions_marketplace = models.BooleanField(
        default=False,
        help_text="Whether the role may read marketplace agreements and catalog",
    )
    last_connection_test = models.DateTimeField(null=True, blank=True)
    connection_error = models.TextField(blank=True)

    class Meta:
        ordering = ["account_name"]

    def __str__(self):
        return f"{self.account_name} ({self.aws_region})"

    @property
    def is_connected(self) -> bool:
        return self.connection_status == self.ConnectionStatus.CONNECTED

    def record_connection_test(self, result: dict):
        """Store the outcome of a provider connection test."""
        self.last_connection_test = timezone.now()
        if result.get("success"):
            self.connection_status = self.ConnectionStatus.CONNECTED
            self.connection_error = ""
            permissions = result.get("permissions") or {}
            self.permissions_marketplace = bool(permissions.get("marketplace", True))
        else:
            self.connection_status = self.ConnectionStatus.FAILED
            self.connection_error = result.get("error") or "Connection test failed"
        self.save(
            update_fields=[
                "last_connection_test",
                "connection_status",
                "connection_error",
                "permissions_marketplace",
                "updated_at",
            ]
        )


class MarketplaceProduct(TenantModel):
    """A marketplace product synced from an integration."""

    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        INACTIVE = "inactive", "Inactive"

    integration = models.ForeignKey(
        MarketplaceIntegration,
        on_delete=models.CASCADE,
        related_name="products",
    )
    product_id = models.CharField(max_length=255)
    product_name = models.CharField(max_length=500)
    vendor = models.CharField(max_length=255, blank=True)
    product_type = models.CharField(max_length=100, blank=True)
    source = models.CharField(
        max_length=30,
        choices=[(s.value, s.value) for s in ProductSource],
        blank=True,
    )
    monthly_cost = models.DecimalField(
        max_digits=14,
        decimal_places=4,
        null=True,
        blank=True,
        help_text="Empty when no pricing is known",
    )
    currency = models.CharField(max_length=3, default="USD")
    availability = models.CharField(
        max_length=20,
        choices=[(a.value, a.value.title()) for a in Availability],
        default=Availability.UNKNOWN.value,
    )
    match_score_hint = models.FloatField(null=True, blank=True)
    marketplace_url = models.URLField(max_length=500, blank=True)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ACTIVE,
    )
    subscription_start = models.DateTimeField(null=True, blank=True)
    subscription_end = models.DateTimeField(null=True, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    synced_at = models.DateTimeField(default=timezone.now)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["integration", "product_id"],
                name="unique_marketplace_product_per_integration",
            ),
        ]
        ordering = ["product_name"]

    def __str__(self):
        return f"{self.product_name} ({self.vendor})"

    def to_external_product(self) -> ExternalProduct:
        return ExternalProduct(
            product_id=self.product_id,
            product_name=self.product_name,
            vendor=self.vendor,
            product_type=self.product_type,
            monthly_cost=self.monthly_cost,
            currency=self.currency,
            availability=Availability(self.availability),
            match_score_hint=self.match_score_hint,
            marketplace_url=self.marketplace_url,
            metadata=self.metadata or {},
            integration_id=self.integration_id,
            source=ProductSource(self.source) if self.source else None,
        )


class MarketplaceSyncLog(TenantModel):
    """One run of pulling data from a marketplace integration."""

    class DataType(models.TextChoices):
        PRODUCTS = "products", "Products"

    class Status(models.TextChoices):
        IN_PROGRESS = "in_progress", "In Progress"
        COMPLETED = "completed", "Completed"
        FAILED = "failed", "Failed"

    integration = models.ForeignKey(
        MarketplaceIntegration,
        on_delete=models.CASCADE,
        related_name="sync_logs",
    )
    data_type = models.CharField(
        max_length=20,
        choices=DataType.choices,
        default=DataType.PRODUCTS,
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.IN_PROGRESS,
    )
    records_synced = models.PositiveIntegerField(default=0)
    records_failed = models.PositiveIntegerField(default=0)
    error_message = models.TextField(blank=True)
    started_at = models.DateTimeField(default=timezone.now)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-started_at"]

    def __str__(self):
        return f"{self.integration} {self.data_type} {self.status}"

    def mark_completed(self, synced: int, failed: int):
        self.status = self.Status.COMPLETED
        self.records_synced = synced
        self.records_failed = failed
        self.completed_at = timezone.now()
        self.save()

    def mark_failed(self, error: str, synced: int = 0, failed: int = 0):
        self.status = self.Status.FAILED
        self.error_message = error
        self.records_synced = synced
        self.records_failed = failed
        self.completed_at = timezone.now()
        self.save()
