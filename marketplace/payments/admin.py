from django.contrib import admin
from .models import Payment, TransactionLog


class TransactionLogInline(admin.TabularInline):
    model = TransactionLog
    extra = 0
    readonly_fields = ['event_type', 'amount', 'status', 'payload', 'created_at']


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ['transaction_id', 'order', 'amount', 'currency', 'status', 'gateway', 'created_at']
    list_filter = ['status', 'gateway', 'created_at']
    search_fields = ['transaction_id', 'order__external_ref']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [TransactionLogInline]
