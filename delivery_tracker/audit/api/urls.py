from django.urls import path

from delivery_tracker.audit.api.views import PackageAuditView
from delivery_tracker.audit.api.views import RecentAuditView

app_name = "audit"

urlpatterns = [
    path("recent/", RecentAuditView.as_view(), name="recent"),
    path("packages/<str:package_id>/", PackageAuditView.as_view(), name="package"),
]
