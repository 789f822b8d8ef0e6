from django.contrib import admin
from .models import Order, OrderItem, OrderStatusHistory, Refund, RefundItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ['organization', 'variant', 'location', 'quantity', 'unit_price', 'line_total',
                       'platform_fee_amount', 'organization_amount', 'commission_source']


class OrderStatusHistoryInline(admin.TabularInline):
    model = OrderStatusHistory
    extra = 0
    readonly_fields = ['status', 'note', 'created_by', 'created_at']


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['external_ref', 'user', 'status', 'total_amount', 'currency', 'placed_at']
    list_filter = ['status', 'placed_at']
    search_fields = ['external_ref', 'user__username', 'user__email']
    readonly_fields = ['placed_at', 'updated_at']
    ordering = ['-placed_at']
    inlines = [OrderItemInline, OrderStatusHistoryInline]


class RefundItemInline(admin.TabularInline):
    model = RefundItem
    extra = 0
    readonly_fields = ['order_item', 'quantity', 'amount']


@admin.register(Refund)
class RefundAdmin(admin.ModelAdmin):
    list_display = ['id', 'order', 'organization', 'amount', 'organization_amount', 'status', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['order__external_ref', 'organization__name', 'reason']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [RefundItemInline]
