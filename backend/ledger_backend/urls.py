from django.contrib import admin
from django.urls import include, path
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

urlpatterns = [
    # Operations endpoints (no auth required)
    path("_health/", include("ops.urls")),

    # Authentication
    path("api/auth/token/", TokenObtainPairView.as_view(), name="token-obtain"),
    path("api/auth/token/refresh/", TokenRefreshView.as_view(), name="token-refresh"),

    # Admin and API
    path("admin/", admin.site.urls),
    path("api/accounting/", include("accounting.urls")),
    path("api/reports/", include("reports.urls")),
    path("api/recurring/", include("recurring.urls")),
]
