"""Abstract base models shared by all apps."""
from django.db import models


class TimestampedModel(models.Model):
    """Records when a row was created and last changed."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class TenantQuerySet(models.QuerySet):
    def for_tenant(self, tenant):
        """Rows owned by ``tenant``; nothing when there is no tenant."""
        if tenant is None:
            return self.none()
        return self.filter(tenant=tenant)


class TenantModel(TimestampedModel):
    """Base for rows owned by a single tenant."""

    tenant = models.ForeignKey(
        "tenants.Tenant",
        on_delete=models.CASCADE,
        related_name="%(class)s_set",
    )

    objects = TenantQuerySet.as_manager()

    class Meta:
        abstract = True
