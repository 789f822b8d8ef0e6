from decimal import Decimal
from rest_framework import serializers
from .models import Order, OrderItem, OrderStatusHistory, Refund, RefundItem, ORDER_STATUS_CHOICES, REFUND_STATUS_CHOICES


class OrderItemSerializer(serializers.ModelSerializer):
    organization_name = serializers.CharField(source='organization.name', read_only=True)

    class Meta:
        model = OrderItem
        fields = ['id', 'organization', 'organization_name', 'variant', 'location', 'quantity', 'unit_price',
                  'line_total', 'platform_fee_amount', 'organization_amount', 'fee_type', 'fee_rate',
                  'commission_source', 'product_name_snapshot', 'variant_sku_snapshot']
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    username = serializers.CharField(source='user.username', read_only=True)

    class Meta:
        model = Order
        fields = ['id', 'external_ref', 'user', 'username', 'status', 'subtotal_amount', 'discount_amount',
                  'tax_amount', 'shipping_amount', 'total_amount', 'currency', 'cancel_reason', 'items',
                  'placed_at', 'updated_at']
        read_only_fields = fields


class OrderStatusHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderStatusHistory
        fields = ['id', 'status', 'note', 'created_by', 'created_at']
        read_only_fields = fields


class OrderItemInputSerializer(serializers.Serializer):
    variant_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)


class OrderCreateSerializer(serializers.Serializer):
    items = OrderItemInputSerializer(many=True)
    shipping_amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=0, required=False,
                                               default=0)
    tax_amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=0, required=False, default=0)
    discount_amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=0, required=False,
                                               default=0)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError('Order must contain at least one item')
        return value


class OrderStatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=ORDER_STATUS_CHOICES)
    note = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class OrderCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500)


class RefundItemSerializer(serializers.ModelSerializer):
    variant_sku = serializers.CharField(source='order_item.variant_sku_snapshot', read_only=True)

    class Meta:
        model = RefundItem
        fields = ['id', 'order_item', 'variant_sku', 'quantity', 'amount']
        read_only_fields = fields


class RefundSerializer(serializers.ModelSerializer):
    items = RefundItemSerializer(many=True, read_only=True)
    order_ref = serializers.CharField(source='order.external_ref', read_only=True)
    organization_name = serializers.CharField(source='organization.name', read_only=True)

    class Meta:
        model = Refund
        fields = ['id', 'order', 'order_ref', 'organization', 'organization_name', 'amount', 'organization_amount',
                  'currency', 'status', 'reason', 'resolution_note', 'requested_by', 'processed_by', 'items',
                  'created_at', 'updated_at']
        read_only_fields = fields


class RefundItemInputSerializer(serializers.Serializer):
    order_item_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)
    amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal('0.01'), required=False)


class RefundCreateSerializer(serializers.Serializer):
    items = RefundItemInputSerializer(many=True)
    reason = serializers.CharField(max_length=1000)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError('Refund must contain at least one item')
        return value


class RefundDecisionSerializer(serializers.Serializer):
    note = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class RefundRejectSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=1000)


class RefundFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=REFUND_STATUS_CHOICES, required=False)
    organization_id = serializers.IntegerField(required=False)
    order_id = serializers.IntegerField(required=False)
