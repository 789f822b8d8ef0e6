from django.conf import settings
from django.db import models


MOVEMENT_REASON_CHOICES = [
    ('purchase', 'Purchase'),
    ('sale', 'Sale'),
    ('return', 'Return'),
    ('damage', 'Damage'),
    ('loss', 'Loss'),
    ('found', 'Found'),
    ('adjustment', 'Adjustment'),
    ('transfer', 'Transfer'),
]


class VariantInventory(models.Model):
    """On-hand and reserved units of a variant at a location"""
    variant = models.ForeignKey('catalog.ProductVariant', on_delete=models.CASCADE, related_name='inventory_records')
    location = models.ForeignKey('locations.Location', on_delete=models.CASCADE, related_name='inventory_records')
    quantity = models.PositiveIntegerField(default=0)
    reserved = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def available(self):
        return self.quantity - self.reserved

    def __str__(self):
        return f"{self.variant_id}@{self.location_id}: {self.quantity} ({self.reserved} reserved)"

    class Meta:
        db_table = 'variant_inventory'
        verbose_name_plural = 'variant inventory'
        constraints = [
            models.UniqueConstraint(fields=['variant', 'location'], name='uniq_variant_location'),
            models.CheckConstraint(condition=models.Q(reserved__lte=models.F('quantity')),
                                   name='inventory_reserved_lte_quantity'),
        ]
        indexes = [
            models.Index(fields=['location'], name='idx_inventory_location'),
        ]


class InventoryMovement(models.Model):
    """Append-only ledger of quantity changes"""
    variant = models.ForeignKey('catalog.ProductVariant', on_delete=models.CASCADE, related_name='movements')
    location = models.ForeignKey('locations.Location', on_delete=models.CASCADE, related_name='movements')
    order = models.ForeignKey('orders.Order', on_delete=models.SET_NULL, null=True, blank=True,
                              related_name='inventory_movements')
    delta = models.IntegerField()  # positive = in, negative = out
    reason = models.CharField(max_length=20, choices=MOVEMENT_REASON_CHOICES)
    note = models.TextField(blank=True, null=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    def __str__(self):
        return f"{self.reason} {self.delta:+d} variant {self.variant_id} @ {self.location_id}"

    class Meta:
        db_table = 'inventory_movements'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['variant', 'location'], name='idx_movement_variant_location'),
        ]
