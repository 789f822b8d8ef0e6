from django.urls import path
from .views import vendor_balance, vendor_balance_transactions, vendor_payout

urlpatterns = [
    path('vendors/<int:organization_id>/balance/', vendor_balance, name='vendor-balance'),
    path('vendors/<int:organization_id>/balance/transactions/', vendor_balance_transactions,
         name='vendor-balance-transactions'),
    path('vendors/<int:organization_id>/balance/payouts/', vendor_payout, name='vendor-payout'),
]
