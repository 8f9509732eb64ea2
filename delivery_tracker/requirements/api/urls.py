from rest_framework.routers import SimpleRouter

from delivery_tracker.requirements.api.views import RequirementTemplateViewSet

app_name = "requirements"

router = SimpleRouter()
router.register("templates", RequirementTemplateViewSet, basename="template")

urlpatterns = router.urls
