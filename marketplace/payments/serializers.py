from rest_framework import serializers
from .gateways import GATEWAYS
from .models import Payment, TransactionLog


class TransactionLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = TransactionLog
        fields = ['id', 'event_type', 'amount', 'status', 'payload', 'created_at']
        read_only_fields = fields


class PaymentSerializer(serializers.ModelSerializer):
    logs = TransactionLogSerializer(many=True, read_only=True)

    class Meta:
        model = Payment
        fields = ['id', 'order', 'amount', 'currency', 'status', 'gateway', 'provider', 'transaction_id',
                  'logs', 'created_at', 'updated_at']
        read_only_fields = fields


class InitiatePaymentSerializer(serializers.Serializer):
    order_id = serializers.IntegerField()
    gateway = serializers.ChoiceField(choices=sorted(GATEWAYS), required=False)
    callback_url = serializers.URLField(required=False)
    metadata = serializers.DictField(required=False)
