"""Renewal alert configurations and the log of alerts raised for them."""
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from apps.core.models import TenantModel


class AlertConfiguration(TenantModel):
    """Who is reminded about a contract's renewal, and how many days ahead."""

    ALERT_DAY_CHOICES = (30, 60, 90)

    contract = models.ForeignKey(
        "contracts.Contract",
        on_delete=models.CASCADE,
        related_name="alert_configurations",
    )
    email = models.EmailField(
        help_text="Address that receives the renewal reminders",
    )
    alert_days = models.JSONField(
        default=list,
        help_text="Days before the contract end date at which to remind, e.g. [30, 90]",
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["contract", "email"]

    def __str__(self):
        return f"{self.email} ({self.days_label} days) for {self.contract}"

    @property
    def days_label(self) -> str:
        return ", ".join(str(days) for days in self.alert_days)

    def clean(self):
        super().clean()
        if not isinstance(self.alert_days, list) or not self.alert_days:
            raise ValidationError({"alert_days": "Select at least one alert period."})
        invalid = [d for d in self.alert_days if d not in self.ALERT_DAY_CHOICES]
        if invalid:
            allowed = ", ".join(str(d) for d in self.ALERT_DAY_CHOICES)
            raise ValidationError({"alert_days": f"Alert periods must be one of {allowed} days."})

    def save(self, *args, **kwargs):
        if isinstance(self.alert_days, list):
            self.alert_days = sorted(set(self.alert_days))
        self.full_clean()
        super().save(*args, **kwargs)

    def is_due(self, days_left: int | None) -> bool:
        """Whether a reminder falls on a day with ``days_left`` days to go."""
        return self.is_active and days_left is not None and days_left in self.alert_days


class AlertHistory(TenantModel):
    """An alert raised for a contract, newest first."""

    class AlertType(models.TextChoices):
        CONFIGURED = "configured", "Configuration Set"
        RENEWAL_REMINDER = "renewal_reminder", "Renewal Reminder"

    contract = models.ForeignKey(
        "contracts.Contract",
        on_delete=models.CASCADE,
        related_name="alert_history",
    )
    configuration = models.ForeignKey(
        AlertConfiguration,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="history",
    )
    email = models.EmailField()
    alert_type = models.CharField(
        max_length=30,
        choices=AlertType.choices,
        default=AlertType.RENEWAL_REMINDER,
    )
    days_before = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        help_text="Alert period the reminder was raised for",
    )
    contract_end_date = models.DateField(
        null=True,
        blank=True,
        help_text="Contract end date the reminder was raised for",
    )
    message = models.CharField(max_length=255, blank=True)
    sent_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-sent_at", "-id"]
        verbose_name_plural = "alert history"

    def __str__(self):
        return f"{self.get_alert_type_display()} to {self.email}"
