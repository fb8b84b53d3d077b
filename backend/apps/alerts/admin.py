from django.contrib import admin

from .models import AlertConfiguration, AlertHistory


@admin.register(AlertConfiguration)
class AlertConfigurationAdmin(admin.ModelAdmin):
    list_display = ["contract", "email", "days_label", "is_active", "tenant"]
    list_filter = ["tenant", "is_active"]
    search_fields = ["email", "contract__name"]


@admin.register(AlertHistory)
class AlertHistoryAdmin(admin.ModelAdmin):
    list_display = ["contract", "email", "alert_type", "days_before", "sent_at"]
    list_filter = ["tenant", "alert_type"]
    search_fields = ["email", "contract__name", "message"]
    readonly_fields = ["sent_at"]
