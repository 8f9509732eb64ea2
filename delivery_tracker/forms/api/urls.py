from rest_framework.routers import SimpleRouter

from delivery_tracker.forms.api.views import FormTemplateViewSet

app_name = "forms"

router = SimpleRouter()
router.register("templates", FormTemplateViewSet, basename="template")

urlpatterns = router.urls
