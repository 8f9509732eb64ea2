from django.urls import path

from .auth_views import CookieLoginView
from .auth_views import CookieLogoutView
from .auth_views import CookieRefreshView

# Cookie transport only: tokens never appear in response bodies.
urlpatterns = [
    path("login/", CookieLoginView.as_view(), name="login"),
    path("refresh/", CookieRefreshView.as_view(), name="refresh"),
    path("logout/", CookieLogoutView.as_view(), name="logout"),
]
