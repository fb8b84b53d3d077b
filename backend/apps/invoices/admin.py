from django.contrib import admin

from .models import Invoice


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ["invoice_number", "contract", "tenant", "date", "amount", "status"]
    list_filter = ["tenant", "status"]
    search_fields = ["invoice_number", "contract__name", "contract__client"]
