from django.contrib import admin

from delivery_tracker.requirements.models import PackageChecklist
from delivery_tracker.requirements.models import RequirementTemplate


@admin.register(RequirementTemplate)
class RequirementTemplateAdmin(admin.ModelAdmin):
    list_display = ["name", "active", "created_by", "updated_at"]
    list_filter = ["active"]
    search_fields = ["name", "description"]
    readonly_fields = ["created_at", "updated_at"]


@admin.register(PackageChecklist)
class PackageChecklistAdmin(admin.ModelAdmin):
    list_display = ["package", "template", "rules_hash", "created_at"]
    list_select_related = ["package", "template"]
    raw_id_fields = ["package"]
