from django.conf import settings
from django.urls import include
from django.urls import path
from rest_framework.routers import DefaultRouter
from rest_framework.routers import SimpleRouter

from delivery_tracker.packages.api.views import PackageViewSet
from delivery_tracker.users.api.views import DriverListView
from delivery_tracker.users.api.views import UserViewSet

router = DefaultRouter() if settings.DEBUG else SimpleRouter()

router.register("users", UserViewSet, basename="user")
router.register("packages", PackageViewSet)


app_name = "api"
urlpatterns = [
    path("drivers/", DriverListView.as_view(), name="driver-list"),
    path(
        "forms/",
        include(("delivery_tracker.forms.api.urls", "forms"), namespace="forms"),
    ),
    path(
        "scan/",
        include(("delivery_tracker.packages.api.urls", "scan"), namespace="scan"),
    ),
    path(
        "requirements/",
        include(
            ("delivery_tracker.requirements.api.urls", "requirements"),
            namespace="requirements",
        ),
    ),
    path(
        "audit/",
        include(("delivery_tracker.audit.api.urls", "audit"), namespace="audit"),
    ),
    *router.urls,
]
