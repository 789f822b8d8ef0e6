from django.contrib import admin
from .models import VendorBalance, VendorBalanceTransaction


class VendorBalanceTransactionInline(admin.TabularInline):
    model = VendorBalanceTransaction
    extra = 0
    readonly_fields = ['transaction_type', 'amount', 'description', 'reference_type', 'reference_id',
                       'balance_before', 'balance_after', 'created_at']


@admin.register(VendorBalance)
class VendorBalanceAdmin(admin.ModelAdmin):
    list_display = ['organization', 'available_balance', 'pending_balance', 'total_earnings', 'total_paid_out',
                    'last_payout_at']
    search_fields = ['organization__name']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [VendorBalanceTransactionInline]
