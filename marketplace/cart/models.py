from django.conf import settings
from django.db import models


class Cart(models.Model):
    """Shopping cart of a signed-in user or a guest session"""
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('converted', 'Converted'),
        ('abandoned', 'Abandoned'),
        ('expired', 'Expired'),
    ]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, null=True, blank=True,
                             related_name='carts')
    session_id = models.CharField(max_length=100, null=True, blank=True, db_index=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active', db_index=True)
    last_activity_at = models.DateTimeField(auto_now=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        owner = f"user {self.user_id}" if self.user_id else f"session {self.session_id}"
        return f"Cart {self.pk} ({owner})"

    class Meta:
        db_table = 'carts'
        ordering = ['-last_activity_at']


class CartItem(models.Model):
    cart = models.ForeignKey(Cart, on_delete=models.CASCADE, related_name='items')
    variant = models.ForeignKey('catalog.ProductVariant', on_delete=models.CASCADE, related_name='cart_items')
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)  # price when added
    currency = models.CharField(max_length=3, default='USD')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def line_total(self):
        return self.unit_price * self.quantity

    class Meta:
        db_table = 'cart_items'
        ordering = ['id']
        constraints = [
            models.UniqueConstraint(fields=['cart', 'variant'], name='uniq_cart_variant'),
            models.CheckConstraint(condition=models.Q(quantity__gte=1), name='cart_item_quantity_positive'),
        ]
