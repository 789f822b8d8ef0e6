from django.contrib import admin
from .models import VariantInventory, InventoryMovement


@admin.register(VariantInventory)
class VariantInventoryAdmin(admin.ModelAdmin):
    list_display = ['variant', 'location', 'quantity', 'reserved', 'updated_at']
    list_filter = ['location']
    search_fields = ['variant__sku', 'variant__product__name', 'location__name']
    readonly_fields = ['updated_at']


@admin.register(InventoryMovement)
class InventoryMovementAdmin(admin.ModelAdmin):
    list_display = ['variant', 'location', 'delta', 'reason', 'order', 'created_by', 'created_at']
    list_filter = ['reason', 'location', 'created_at']
    search_fields = ['variant__sku', 'note']
    readonly_fields = ['created_at']
    ordering = ['-created_at']
