from django.urls import path

from orders.views import (
    OrderCheckoutView,
    OrderDetailView,
    OrderListView,
    OrderCancelView,
    OrderRefundView,
)

urlpatterns = [
    path('', OrderListView.as_view(), name='order-list'),
    path('checkout/', OrderCheckoutView.as_view(), name='order-checkout'),
    path('<uuid:order_id>/', OrderDetailView.as_view(), name='order-detail'),
    path('<uuid:order_id>/cancel/', OrderCancelView.as_view(), name='order-cancel'),
    path('<uuid:order_id>/refund/', OrderRefundView.as_view(), name='order-refund'),
]
