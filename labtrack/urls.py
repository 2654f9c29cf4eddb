"""
Root routes for labtrack.

    /admin/          Django admin (repair and bulk-approve actions)
    /lab/auth/       JWT tokens and the browsable-API login
    /lab/schema/     OpenAPI schema, Swagger UI, ReDoc
    /lab/            order workflow and verification API
"""
from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView, SpectacularSwaggerView
from rest_framework.permissions import AllowAny
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

auth_patterns = [
    path("token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    path("session/", include("rest_framework.urls")),
]

schema_patterns = [
    path("", SpectacularAPIView.as_view(permission_classes=[AllowAny]), name="schema"),
    path("swagger/", SpectacularSwaggerView.as_view(url_name="schema", permission_classes=[AllowAny]), name="swagger-ui"),
    path("redoc/", SpectacularRedocView.as_view(url_name="schema", permission_classes=[AllowAny]), name="redoc"),
]

urlpatterns = [
    path("admin/", admin.site.urls),
    path("lab/auth/", include(auth_patterns)),
    path("lab/schema/", include(schema_patterns)),
    path("lab/", include("orders_core.urls")),
]
