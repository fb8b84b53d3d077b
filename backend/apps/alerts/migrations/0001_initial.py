"""Renewal alert configurations and history."""

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("tenants", "0001_initial"),
        ("contracts", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="AlertConfiguration",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("email", models.EmailField(help_text="Address that receives the renewal reminders", max_length=254)),
                (
                    "alert_days",
                    models.JSONField(
                        default=list,
                        help_text="Days before the contract end date at which to remind, e.g. [30, 90]",
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                (
                    "contract",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="alert_configurations",
                        to="contracts.contract",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="%(class)s_set",
                        to="tenants.tenant",
                    ),
                ),
            ],
            options={
                "ordering": ["contract", "email"],
            },
        ),
        migrations.CreateModel(
            name="AlertHistory",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("email", models.EmailField(max_length=254)),
                (
                    "alert_type",
                    models.CharField(
                        choices=[("configured", "Configuration Set"), ("renewal_reminder", "Renewal Reminder")],
                        default="renewal_reminder",
                        max_length=30,
                    ),
                ),
                (
                    "days_before",
                    models.PositiveSmallIntegerField(
                        blank=True, help_text="Alert period the reminder was raised for", null=True
                    ),
                ),
                (
                    "contract_end_date",
                    models.DateField(
                        blank=True, help_text="Contract end date the reminder was raised for", null=True
                    ),
                ),
                ("message", models.CharField(blank=True, max_length=255)),
                ("sent_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "configuration",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="history",
                        to="alerts.alertconfiguration",
                    ),
                ),
                (
                    "contract",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="alert_history",
                        to="contracts.contract",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="%(class)s_set",
                        to="tenants.tenant",
                    ),
                ),
            ],
            options={
                "ordering": ["-sent_at", "-id"],
                "verbose_name_plural": "alert history",
            },
        ),
    ]
