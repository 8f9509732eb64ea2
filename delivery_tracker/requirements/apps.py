from django.apps import AppConfig


class RequirementsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "delivery_tracker.requirements"
    verbose_name = "Delivery requirements"
