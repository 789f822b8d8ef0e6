from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Platform user (customer, vendor staff or admin)"""
    USER_TYPE_CHOICES = [
        ('customer', 'Customer'),
        ('vendor', 'Vendor'),
        ('admin', 'Admin'),
    ]

    email = models.EmailField(unique=True)
    phone = models.CharField(max_length=20, blank=True, null=True)
    user_type = models.CharField(max_length=20, choices=USER_TYPE_CHOICES, default='customer', db_index=True)
    is_verified = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'


class AuditLog(models.Model):
    """Audit log for critical operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('stock_adjust', 'Stock Adjustment'),
        ('stock_transfer', 'Stock Transfer'),
        ('order_create', 'Order Created'),
        ('order_status', 'Order Status Changed'),
        ('order_cancel', 'Order Cancelled'),
        ('org_approve', 'Organization Approved'),
        ('org_reject', 'Organization Rejected'),
        ('org_suspend', 'Organization Suspended'),
        ('org_reactivate', 'Organization Reactivated'),
        ('payment_initiate', 'Payment Initiated'),
        ('payment_update', 'Payment Updated'),
        ('member_add', 'Member Added'),
        ('refund_create', 'Refund Requested'),
        ('refund_approve', 'Refund Approved'),
        ('refund_reject', 'Refund Rejected'),
        ('refund_complete', 'Refund Completed'),
        ('refund_cancel', 'Refund Cancelled'),
        ('cms_update', 'Content Updated'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object")
    object_reference = models.CharField(max_length=255, blank=True, null=True, help_text="Reference identifier (e.g., order reference, SKU)")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at']),
            models.Index(fields=['action']),
            models.Index(fields=['model_name']),
            models.Index(fields=['object_reference']),
        ]
