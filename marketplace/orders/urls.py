from django.urls import path
from .views import (
    order_list_create, order_detail, order_status_update, order_cancel,
    order_history, order_movements, order_refunds,
    refund_list, refund_statistics, refund_detail, refund_approve, refund_reject,
    refund_complete, refund_cancel, organization_refunds,
)

urlpatterns = [
    path('orders/', order_list_create, name='order-list-create'),
    path('orders/<int:pk>/', order_detail, name='order-detail'),
    path('orders/<int:pk>/status/', order_status_update, name='order-status'),
    path('orders/<int:pk>/cancel/', order_cancel, name='order-cancel'),
    path('orders/<int:pk>/history/', order_history, name='order-history'),
    path('orders/<int:pk>/movements/', order_movements, name='order-movements'),
    path('orders/<int:pk>/refunds/', order_refunds, name='order-refunds'),

    # Refund endpoints
    path('refunds/', refund_list, name='refund-list'),
    path('refunds/stats/', refund_statistics, name='refund-stats'),
    path('refunds/<int:pk>/', refund_detail, name='refund-detail'),
    path('refunds/<int:pk>/approve/', refund_approve, name='refund-approve'),
    path('refunds/<int:pk>/reject/', refund_reject, name='refund-reject'),
    path('refunds/<int:pk>/complete/', refund_complete, name='refund-complete'),
    path('refunds/<int:pk>/cancel/', refund_cancel, name='refund-cancel'),
    path('organizations/<int:organization_id>/refunds/', organization_refunds, name='organization-refunds'),
]
