from django.db import models


PAYMENT_STATUS_CHOICES = [
    ('pending', 'Pending'),
    ('authorized', 'Authorized'),
    ('captured', 'Captured'),
    ('failed', 'Failed'),
    ('voided', 'Voided'),
]

SUCCESSFUL_STATUSES = ('authorized', 'captured')


class Payment(models.Model):
    order = models.ForeignKey('orders.Order', on_delete=models.PROTECT, related_name='payments')
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    currency = models.CharField(max_length=3, default='USD')
    status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='pending', db_index=True)
    gateway = models.CharField(max_length=30)  # e.g., "manual", "http"
    provider = models.CharField(max_length=100, blank=True)
    transaction_id = models.CharField(max_length=150, unique=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.gateway}:{self.transaction_id} ({self.status})"

    class Meta:
        db_table = 'payments'
        ordering = ['-created_at', '-id']


class TransactionLog(models.Model):
    """Gateway interactions recorded against a payment"""
    payment = models.ForeignKey(Payment, on_delete=models.CASCADE, related_name='logs')
    event_type = models.CharField(max_length=50)  # payment_initiated, payment_verified, callback_received
    amount = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    status = models.CharField(max_length=20, blank=True)
    payload = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'payment_transaction_logs'
        ordering = ['created_at', 'id']
