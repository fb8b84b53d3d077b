from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from apps.core.permissions import normalize_permissions
from .models import Role, Tenant, User


class RoleInline(admin.TabularInline):
    model = Role
    extra = 0
    fields = ["name", "is_default", "is_system"]
    readonly_fields = ["is_system"]
    show_change_link = True


@admin.register(Tenant)
class TenantAdmin(admin.ModelAdmin):
    list_display = ["name", "currency", "renewal_window_days", "is_active", "user_count", "created_at"]
    list_filter = ["is_active", "currency"]
    search_fields = ["name"]
    inlines = [RoleInline]

    @admin.display(description="Users")
    def user_count(self, obj):
        return obj.users.count()


@admin.register(Role)
class RoleAdmin(admin.ModelAdmin):
    list_display = ["name", "tenant", "is_default", "is_system", "granted"]
    list_filter = ["tenant", "is_default", "is_system"]
    search_fields = ["name", "tenant__name"]
    readonly_fields = ["is_system"]

    @admin.display(description="Permissions")
    def granted(self, obj):
        return ", ".join(sorted(normalize_permissions(obj.permissions or {})))



@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ["email", "tenant", "role_names", "is_active", "is_staff"]
    list_filter = ["is_active", "is_staff", "tenant"]
    search_fields = ["email", "first_name", "last_name"]
    ordering = ["email"]
    filter_horizontal = ["roles", "groups", "user_permissions"]
    fieldsets = (
        (None, {"fields": ("email", "password")}),
        ("Personal info", {"fields": ("first_name", "last_name")}),
        ("Tenant access", {"fields": ("tenant", "roles")}),
        ("Permissions", {"fields": ("is_active", "is_staff", "is_superuser", "groups", "user_permissions")}),
        ("Important dates", {"fields": ("last_login", "date_joined")}),
    )
    add_fieldsets = (
        (None, {"classes": ("wide",), "fields": ("email", "password1", "password2", "tenant", "roles")}),
    )

    @admin.display(description="Roles")
    def role_names(self, obj):
        return ", ".join(role.name for role in obj.roles.all())
