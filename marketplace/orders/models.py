from django.conf import settings
from django.db import models
from decimal import Decimal


ORDER_STATUS_CHOICES = [
    ('pending', 'Pending'),
    ('processing', 'Processing'),
    ('shipped', 'Shipped'),
    ('delivered', 'Delivered'),
    ('cancelled', 'Cancelled'),
    ('refunded', 'Refunded'),
]

TERMINAL_STATUSES = ('cancelled', 'refunded')

# Forward-only lifecycle; delivered orders only leave through a completed refund
ALLOWED_TRANSITIONS = {
    'pending': ('processing', 'shipped', 'cancelled'),
    'processing': ('shipped', 'cancelled'),
    'shipped': ('delivered',),
    'delivered': ('refunded',),
    'cancelled': (),
    'refunded': (),
}


class Order(models.Model):
    """Customer order; items may belong to several vendor organizations"""
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='orders')
    external_ref = models.CharField(max_length=50, unique=True, null=True, blank=True)  # ORD-2025-0001
    status = models.CharField(max_length=20, choices=ORDER_STATUS_CHOICES, default='pending', db_index=True)
    subtotal_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    discount_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    tax_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    shipping_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    currency = models.CharField(max_length=3, default='USD')
    cancel_reason = models.TextField(blank=True, null=True)
    placed_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.external_ref or f"Order {self.pk}"

    @property
    def is_terminal(self):
        return self.status in TERMINAL_STATUSES

    class Meta:
        db_table = 'orders'
        ordering = ['-placed_at', '-id']
        indexes = [
            models.Index(fields=['user', 'status'], name='idx_order_user_status'),
        ]


class OrderItem(models.Model):
    """Order line with its commission split and product snapshot"""
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    organization = models.ForeignKey('organizations.Organization', on_delete=models.PROTECT, related_name='order_items')
    variant = models.ForeignKey('catalog.ProductVariant', on_delete=models.PROTECT, related_name='order_items')
    location = models.ForeignKey('locations.Location', on_delete=models.SET_NULL, null=True, blank=True,
                                 related_name='order_items')
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    line_total = models.DecimalField(max_digits=14, decimal_places=2)
    platform_fee_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    organization_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    fee_type = models.CharField(max_length=20, default='none')
    fee_rate = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    commission_source = models.CharField(max_length=30, default='none')
    product_name_snapshot = models.CharField(max_length=255)
    variant_sku_snapshot = models.CharField(max_length=50)

    def __str__(self):
        return f"{self.variant_sku_snapshot} x {self.quantity}"

    class Meta:
        db_table = 'order_items'
        ordering = ['id']


class OrderStatusHistory(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='status_history')
    status = models.CharField(max_length=20, choices=ORDER_STATUS_CHOICES)
    note = models.TextField(blank=True, null=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'order_status_history'
        ordering = ['created_at', 'id']
        verbose_name_plural = 'order status history'


REFUND_STATUS_CHOICES = [
    ('requested', 'Requested'),
    ('approved', 'Approved'),
    ('rejected', 'Rejected'),
    ('completed', 'Completed'),
    ('cancelled', 'Cancelled'),
    ('failed', 'Failed'),
]

# Refunds in these states still count against the refundable quantity of a line
OPEN_REFUND_STATUSES = ('requested', 'approved', 'completed')


class Refund(models.Model):
    """Refund request for the lines of one vendor within a delivered order"""
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='refunds')
    organization = models.ForeignKey('organizations.Organization', on_delete=models.PROTECT, related_name='refunds')
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    organization_amount = models.DecimalField(max_digits=14, decimal_places=2)
    currency = models.CharField(max_length=3, default='USD')
    status = models.CharField(max_length=20, choices=REFUND_STATUS_CHOICES, default='requested', db_index=True)
    reason = models.TextField()
    resolution_note = models.TextField(blank=True, null=True)
    requested_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                                     related_name='refund_requests')
    processed_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                                     related_name='processed_refunds')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Refund {self.pk} for order {self.order_id} ({self.status})"

    class Meta:
        db_table = 'refunds'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['organization', 'status'], name='idx_refund_org_status'),
        ]


class RefundItem(models.Model):
    refund = models.ForeignKey(Refund, on_delete=models.CASCADE, related_name='items')
    order_item = models.ForeignKey(OrderItem, on_delete=models.PROTECT, related_name='refund_items')
    quantity = models.PositiveIntegerField()
    amount = models.DecimalField(max_digits=14, decimal_places=2)

    class Meta:
        db_table = 'refund_items'
        ordering = ['id']
