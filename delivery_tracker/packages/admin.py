from django.contrib import admin

from delivery_tracker.packages import models


class DeliveryEventInline(admin.TabularInline):
    model = models.DeliveryEvent
    extra = 0
    readonly_fields = ["type", "source", "actor", "payload", "timestamp"]


@admin.register(models.Package)
class PackageAdmin(admin.ModelAdmin):
    list_display = ["barcode", "status", "recipient_name", "driver", "created_at"]
    list_filter = ["status"]
    search_fields = ["barcode", "recipient_name", "recipient_email"]
    inlines = [DeliveryEventInline]


@admin.register(models.DeliveryEvent)
class DeliveryEventAdmin(admin.ModelAdmin):
    list_display = ["id", "package", "type", "source", "timestamp"]
    list_filter = ["type", "source"]
