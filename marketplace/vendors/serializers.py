from decimal import Decimal
from rest_framework import serializers
from .models import VendorBalance, VendorBalanceTransaction


class VendorBalanceSerializer(serializers.ModelSerializer):
    organization_name = serializers.CharField(source='organization.name', read_only=True)

    class Meta:
        model = VendorBalance
        fields = ['id', 'organization', 'organization_name', 'available_balance', 'pending_balance',
                  'total_earnings', 'total_paid_out', 'currency', 'last_payout_at', 'updated_at']
        read_only_fields = fields


class VendorBalanceTransactionSerializer(serializers.ModelSerializer):
    class Meta:
        model = VendorBalanceTransaction
        fields = ['id', 'transaction_type', 'amount', 'description', 'reference_type', 'reference_id',
                  'balance_before', 'balance_after', 'created_at']
        read_only_fields = fields


class PayoutSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal('0.01'))
    reference = serializers.CharField(required=False, allow_blank=True, max_length=100)
    description = serializers.CharField(required=False, allow_blank=True, max_length=255)
