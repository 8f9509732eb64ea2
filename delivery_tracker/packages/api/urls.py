from django.urls import path

from delivery_tracker.packages.api.views import ScanHistoryView
from delivery_tracker.packages.api.views import ScanView

app_name = "scan"

urlpatterns = [
    path("", ScanView.as_view(), name="apply"),
    path("history/", ScanHistoryView.as_view(), name="history"),
]
