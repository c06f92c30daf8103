from django.urls import path

from .views import (
    ClinicMembersView,
    ClinicProfileView,
    PricelistItemView,
    PricelistView,
    PublicClinicListView,
)

urlpatterns = [
    path('clinic/profile/', ClinicProfileView.as_view(), name='clinic-profile'),
    path('clinic/members/', ClinicMembersView.as_view(), name='clinic-members'),
    path('clinic/pricelist/', PricelistView.as_view(), name='clinic-pricelist'),
    path('clinic/pricelist/<uuid:pk>/', PricelistItemView.as_view(), name='clinic-pricelist-item'),
    path('clinics/', PublicClinicListView.as_view(), name='clinic-directory'),
]
