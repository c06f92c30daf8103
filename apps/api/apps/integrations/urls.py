"""Integration URLs."""
from django.urls import path
from .views import analysis_callback

urlpatterns = [
    path('integrations/analysis/callback/', analysis_callback, name='analysis-callback'),
]
