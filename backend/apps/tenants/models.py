"""Tenants, roles and email-based users."""
from functools import cached_property

from django.conf import settings
from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models

from apps.core.models import TimestampedModel
from apps.core.permissions import DEFAULT_ROLES, normalize_permissions


class Tenant(TimestampedModel):
    """An organization whose contracts and marketplace accounts are tracked together."""

    name = models.CharField(max_length=255)
    currency = models.CharField(max_length=3, default="USD")
    renewal_window_days = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        help_text="Overrides RENEWAL_WINDOW_DAYS for this tenant",
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name

    @property
    def renewal_window(self) -> int:
        """Days ahead of today that count as the renewal window."""
        if self.renewal_window_days is not None:
            return self.renewal_window_days
        return settings.RENEWAL_WINDOW_DAYS

    def seed_default_roles(self) -> list["Role"]:
        """Create the built-in roles that do not exist yet."""
        roles = []
        for role_name, permissions in DEFAULT_ROLES.items():
            role, _ = Role.objects.get_or_create(
                tenant=self,
                name=role_name,
                defaults={
                    "permissions": permissions,
                    "is_system": True,
                    "is_default": role_name == "Manager",
                },
            )
            roles.append(role)
        return roles


class Role(TimestampedModel):
    """A named set of permissions within a tenant."""

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name="roles",
    )
    name = models.CharField(max_length=100)
    permissions = models.JSONField(default=dict, blank=True)
    is_default = models.BooleanField(default=False)
    is_system = models.BooleanField(default=False)

    class Meta:
        ordering = ["tenant", "name"]
        unique_together = ["tenant", "name"]

    def __str__(self):
        return f"{self.tenant.name} - {self.name}"

    def save(self, *args, **kwargs):
        self.permissions = normalize_permissions(self.permissions or {})
        super().save(*args, **kwargs)


class UserManager(BaseUserManager):
    """Manager for users identified by e-mail address."""

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError("The Email field must be set")
        user = self.model(email=self.normalize_email(email), **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        return self.create_user(email, password, **extra_fields)


class User(AbstractUser):
    """A person signing in with e-mail, scoped to one tenant."""

    username = None
    email = models.EmailField(unique=True)

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name="users",
        null=True,
        blank=True,
    )
    roles = models.ManyToManyField(
        Role,
        blank=True,
        related_name="users",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        ordering = ["email"]

    def __str__(self):
        return self.email

    @cached_property
    def effective_permissions(self) -> set[str]:
        """Union of the permissions granted by all assigned roles."""
        granted = set()
        for role in self.roles.all():
            granted.update(normalize_permissions(role.permissions or {}))
        return granted

    def has_perm_check(self, resource: str, action: str) -> bool:
        """Superusers pass every check; everyone else needs a role granting it."""
        if self.is_superuser:
            return True
        return f"{resource}.{action}" in self.effective_permissions
