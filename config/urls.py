# config/urls.py
from django.urls import include, path

from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

urlpatterns = [
    # OpenAPI
    path("api/schema/", SpectacularAPIView.as_view(), name="schema"),
    path("api/docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),

    # Primary versioned API
    path("api/v1/", include("hm_desk.api.urls")),

    # Backwards-compatible alias for older front-desk builds
    path("api/", include(("hm_desk.api.urls", "legacy"), namespace="legacy")),
]
