from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from delivery_tracker.users.models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ["id", "username", "email", "name", "role", "is_active"]
    search_fields = ["username", "email", "name"]
    list_filter = ["role", "is_active", "is_staff"]
    fieldsets = (
        *BaseUserAdmin.fieldsets,
        ("Delivery", {"fields": ("name", "role")}),
    )
