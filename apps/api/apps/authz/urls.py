"""
Authz URLs - registration and current user.
"""
from django.urls import path

from .views import MeView, RegisterView

urlpatterns = [
    path('auth/register/', RegisterView.as_view(), name='auth-register'),
    path('auth/me/', MeView.as_view(), name='auth-me'),
]
