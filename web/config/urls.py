from django.urls import include, path

from gateway.health import health_view

urlpatterns = [
    path("api/", include("apps.checkout.urls")),
    path("health/", health_view, name="health"),
]
