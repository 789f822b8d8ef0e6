from django.contrib import admin
from .models import Cart, CartItem


class CartItemInline(admin.TabularInline):
    model = CartItem
    extra = 0


@admin.register(Cart)
class CartAdmin(admin.ModelAdmin):
    list_display = ['id', 'user', 'session_id', 'status', 'last_activity_at', 'created_at']
    list_filter = ['status']
    search_fields = ['user__username', 'session_id']
    inlines = [CartItemInline]
