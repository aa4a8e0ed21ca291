"""Root URL configuration.

    /admin/                     Django admin
    /api/v1/resources/          catalog and availability
    /api/v1/reservations/       booking and lifecycle
"""
from django.contrib import admin  # type: ignore
from django.urls import include, path  # type: ignore

api_v1 = [
    path('resources/', include('apps.resources.urls')),
    path('reservations/', include('apps.reservations.urls')),
]

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include(api_v1)),
]
