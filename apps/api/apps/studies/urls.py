from django.urls import path

from .views import (
    StudyDetailView,
    StudyInitUploadView,
    StudyListCreateView,
    StudyReportView,
    StudyStatusView,
    StudyUploadView,
)

urlpatterns = [
    path('studies/', StudyListCreateView.as_view(), name='study-list'),
    path('studies/<uuid:pk>/', StudyDetailView.as_view(), name='study-detail'),
    path('studies/<uuid:pk>/init-upload/', StudyInitUploadView.as_view(), name='study-init-upload'),
    path('studies/<uuid:pk>/upload/', StudyUploadView.as_view(), name='study-upload'),
    path('studies/<uuid:pk>/status/', StudyStatusView.as_view(), name='study-status'),
    path('studies/<uuid:pk>/report/', StudyReportView.as_view(), name='study-report'),
]
