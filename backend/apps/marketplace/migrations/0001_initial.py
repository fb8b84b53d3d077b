"""Marketplace integrations, synced products and sync logs."""

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("tenants", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="MarketplaceIntegration",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("account_name", models.CharField(max_length=255)),
                ("account_id", models.CharField(blank=True, help_text="Cloud account id", max_length=32)),
                ("aws_region", models.CharField(default="us-east-1", max_length=32)),
                (
                    "connection_type",
                    models.CharField(
                        choices=[("iam_role", "IAM Role"), ("manual", "Manual")],
                        default="iam_role",
                        max_length=20,
                    ),
                ),
                ("role_arn", models.CharField(blank=True, max_length=255)),
                ("external_id", models.CharField(blank=True, max_length=255)),
                (
                    "connection_status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("validating", "Validating"),
                            ("connected", "Connected"),
                            ("failed", "Failed"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                (
                    "permissions_marketplace",
                    models.BooleanField(
                        default=False,
                        help_text="Whether the role may read marketplace agreements and catalog",
                    ),
                ),
                ("last_connection_test", models.DateTimeField(blank=True, null=True)),
                ("connection_error", models.TextField(blank=True)),
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
                "ordering": ["account_name"],
            },
        ),
        migrations.CreateModel(
            name="MarketplaceProduct",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("product_id", models.CharField(max_length=255)),
                ("product_name", models.CharField(max_length=500)),
                ("vendor", models.CharField(blank=True, max_length=255)),
                ("product_type", models.CharField(blank=True, max_length=100)),
                (
                    "source",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("marketplace_catalog", "marketplace_catalog"),
                            ("marketplace_agreement", "marketplace_agreement"),
                            ("ec2_marketplace", "ec2_marketplace"),
                        ],
                        max_length=30,
                    ),
                ),
                (
                    "monthly_cost",
                    models.DecimalField(
                        blank=True,
                        decimal_places=4,
                        help_text="Empty when no pricing is known",
                        max_digits=14,
                        null=True,
                    ),
                ),
                ("currency", models.CharField(default="USD", max_length=3)),
                (
                    "availability",
                    models.CharField(
                        choices=[("available", "Available"), ("unavailable", "Unavailable"), ("unknown", "Unknown")],
                        default="unknown",
                        max_length=20,
                    ),
                ),
                ("match_score_hint", models.FloatField(blank=True, null=True)),
                ("marketplace_url", models.URLField(blank=True, max_length=500)),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("inactive", "Inactive")],
                        default="active",
                        max_length=20,
                    ),
                ),
                ("subscription_start", models.DateTimeField(blank=True, null=True)),
                ("subscription_end", models.DateTimeField(blank=True, null=True)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("synced_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "integration",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="products",
                        to="marketplace.marketplaceintegration",
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
                "ordering": ["product_name"],
            },
        ),
        migrations.CreateModel(
            name="MarketplaceSyncLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "data_type",
                    models.CharField(choices=[("products", "Products")], default="products", max_length=20),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("in_progress", "In Progress"), ("completed", "Completed"), ("failed", "Failed")],
                        default="in_progress",
                        max_length=20,
                    ),
                ),
                ("records_synced", models.PositiveIntegerField(default=0)),
                ("records_failed", models.PositiveIntegerField(default=0)),
                ("error_message", models.TextField(blank=True)),
                ("started_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "integration",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="sync_logs",
                        to="marketplace.marketplaceintegration",
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
                "ordering": ["-started_at"],
            },
        ),
        migrations.AddConstraint(
            model_name="marketplaceproduct",
            constraint=models.UniqueConstraint(
                fields=("integration", "product_id"),
                name="unique_marketplace_product_per_integration",
            ),
        ),
    ]
