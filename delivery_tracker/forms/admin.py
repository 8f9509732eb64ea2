from django.contrib import admin

from delivery_tracker.forms import models


@admin.register(models.FormTemplate)
class FormTemplateAdmin(admin.ModelAdmin):
    list_display = ["name", "status", "created_by", "published_at", "updated_at"]
    list_filter = ["status"]
    search_fields = ["name", "description"]
    readonly_fields = ["published_at", "created_at", "updated_at"]
