from django.contrib import admin

from .models import Contract, ContractDocument


class ContractDocumentInline(admin.TabularInline):
    model = ContractDocument
    extra = 0
    fields = ["original_filename", "file", "file_size", "content_type", "uploaded_by"]
    readonly_fields = ["file_size", "content_type", "uploaded_by"]


@admin.register(Contract)
class ContractAdmin(admin.ModelAdmin):
    list_display = ["id", "name", "client", "tenant", "status", "provider_type", "value", "end_date"]
    list_filter = ["tenant", "status", "provider_type"]
    search_fields = ["name", "client"]
    inlines = [ContractDocumentInline]


@admin.register(ContractDocument)
class ContractDocumentAdmin(admin.ModelAdmin):
    list_display = ["original_filename", "contract", "file_size", "created_at"]
    list_filter = ["tenant"]
    search_fields = ["original_filename", "contract__name"]
