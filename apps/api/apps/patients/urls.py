from django.urls import path

from .views import PatientMeView

urlpatterns = [
    path('patients/me/', PatientMeView.as_view(), name='patient-me'),
]
