"""
URL configuration for the Dental Marketplace API project.
"""
from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import (
    SpectacularAPIView,
    SpectacularRedocView,
    SpectacularSwaggerView,
)
from apps.core.observability.health import HealthzView, ReadyzView

urlpatterns = [
    # Health checks (no auth required)
    path('healthz', HealthzView.as_view(), name='healthz'),
    path('readyz', ReadyzView.as_view(), name='readyz'),

    # Admin
    path('admin/', admin.site.urls),

    # JWT token endpoints
    path('api/', include('apps.core.urls')),

    # Marketplace API
    path('api/v1/', include('apps.authz.urls')),
    path('api/v1/', include('apps.patients.urls')),
    path('api/v1/', include('apps.clinics.urls')),
    path('api/v1/', include('apps.studies.urls')),
    path('api/v1/', include('apps.plans.urls')),
    path('api/v1/', include('apps.offers.urls')),
    path('api/v1/', include('apps.orders.urls')),
    path('api/v1/', include('apps.integrations.urls')),

    # API Schema
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/schema/swagger-ui/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('api/schema/redoc/', SpectacularRedocView.as_view(url_name='schema'), name='redoc'),
]

# Serve media files in development
if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
    urlpatterns += static(settings.STATIC_URL, document_root=settings.STATIC_ROOT)
