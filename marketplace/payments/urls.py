from django.urls import path
from .views import payment_initiate, payment_verify, payment_callback, order_payments

urlpatterns = [
    path('payments/initiate/', payment_initiate, name='payment-initiate'),
    path('payments/verify/<str:transaction_id>/', payment_verify, name='payment-verify'),
    path('payments/callback/<str:gateway>/', payment_callback, name='payment-callback'),
    path('payments/order/<int:order_id>/', order_payments, name='order-payments'),
]
