from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin-panel/", admin.site.urls, name="admin"),
    path("api/v1/", include("apps.offers.urls")),
    path("api/v1/", include("apps.orders.urls")),
    path("api/v1/", include("apps.disputes.urls")),
    path("api/v1/", include("apps.reviews.urls")),
    path("api/v1/", include("apps.notifications.urls")),
]
