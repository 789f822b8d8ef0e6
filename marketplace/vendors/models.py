from django.db import models
from decimal import Decimal


class VendorBalance(models.Model):
    """Running earnings of a vendor organization"""
    organization = models.OneToOneField('organizations.Organization', on_delete=models.CASCADE, related_name='balance')
    available_balance = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    pending_balance = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    total_earnings = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    total_paid_out = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    currency = models.CharField(max_length=3, default='USD')
    last_payout_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.organization} balance"

    class Meta:
        db_table = 'vendor_balances'


class VendorBalanceTransaction(models.Model):
    TRANSACTION_TYPE_CHOICES = [
        ('credit', 'Credit'),
        ('debit', 'Debit'),
        ('hold', 'Hold'),
        ('release', 'Release'),
        ('payout', 'Payout'),
        ('refund', 'Refund'),
    ]

    balance = models.ForeignKey(VendorBalance, on_delete=models.CASCADE, related_name='transactions')
    transaction_type = models.CharField(max_length=20, choices=TRANSACTION_TYPE_CHOICES)
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    description = models.CharField(max_length=255, blank=True)
    reference_type = models.CharField(max_length=50, blank=True, null=True)  # e.g., "order"
    reference_id = models.CharField(max_length=100, blank=True, null=True)
    balance_before = models.DecimalField(max_digits=14, decimal_places=2)
    balance_after = models.DecimalField(max_digits=14, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.transaction_type} {self.amount}"

    class Meta:
        db_table = 'vendor_balance_transactions'
        ordering = ['-created_at', '-id']
