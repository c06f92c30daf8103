from django.urls import path

from .views import PlanDetailView, PlanEstimateView, PlanListView

urlpatterns = [
    path('plans/', PlanListView.as_view(), name='plan-list'),
    path('plans/<uuid:pk>/', PlanDetailView.as_view(), name='plan-detail'),
    path('plans/<uuid:pk>/estimate/', PlanEstimateView.as_view(), name='plan-estimate'),
]
