from django.urls import path

from .views import OrderDetailView, OrderListView, OrderStatusView

urlpatterns = [
    path('orders/', OrderListView.as_view(), name='order-list'),
    path('orders/<uuid:pk>/', OrderDetailView.as_view(), name='order-detail'),
    path('orders/<uuid:pk>/status/', OrderStatusView.as_view(), name='order-status'),
]
