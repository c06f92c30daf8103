from django.urls import path

from .views import (
    OfferAcceptView,
    OfferListCreateView,
    OfferRequestDetailView,
    OfferRequestListCreateView,
    OfferRequestOffersView,
)

urlpatterns = [
    path('offer-requests/', OfferRequestListCreateView.as_view(), name='offer-request-list'),
    path('offer-requests/<uuid:pk>/', OfferRequestDetailView.as_view(), name='offer-request-detail'),
    path('offer-requests/<uuid:pk>/offers/', OfferRequestOffersView.as_view(), name='offer-request-offers'),
    path('offers/', OfferListCreateView.as_view(), name='offer-list'),
    path('offers/<uuid:pk>/accept/', OfferAcceptView.as_view(), name='offer-accept'),
]
