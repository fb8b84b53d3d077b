from django.contrib import admin

from .models import MarketplaceIntegration, MarketplaceProduct, MarketplaceSyncLog


@admin.register(MarketplaceIntegration)
class MarketplaceIntegrationAdmin(admin.ModelAdmin):
    list_display = ["account_name", "tenant", "aws_region", "connection_type", "connection_status", "last_connection_test"]
    list_filter = ["tenant", "connection_status", "connection_type"]
    search_fields = ["account_name", "account_id"]


@admin.register(MarketplaceProduct)
class MarketplaceProductAdmin(admin.ModelAdmin):
    list_display = ["product_name", "vendor", "integration", "monthly_cost", "currency", "availability", "synced_at"]
    list_filter = ["integration__tenant", "availability", "status", "source"]
    search_fields = ["product_name", "vendor", "product_id"]


@admin.register(MarketplaceSyncLog)
class MarketplaceSyncLogAdmin(admin.ModelAdmin):
    list_display = ["integration", "data_type", "status", "records_synced", "records_failed", "started_at", "completed_at"]
    list_filter = ["integration__tenant", "status"]
    readonly_fields = ["started_at", "completed_at"]
