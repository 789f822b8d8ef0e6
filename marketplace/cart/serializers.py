from rest_framework import serializers
from .models import Cart, CartItem


class CartItemSerializer(serializers.ModelSerializer):
    sku = serializers.CharField(source='variant.sku', read_only=True)
    product_name = serializers.CharField(source='variant.product.name', read_only=True)
    line_total = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = CartItem
        fields = ['id', 'variant', 'sku', 'product_name', 'quantity', 'unit_price', 'currency', 'line_total',
                  'created_at', 'updated_at']
        read_only_fields = fields


class CartSerializer(serializers.ModelSerializer):
    items = CartItemSerializer(many=True, read_only=True)
    summary = serializers.SerializerMethodField()

    class Meta:
        model = Cart
        fields = ['id', 'user', 'session_id', 'status', 'items', 'summary', 'last_activity_at', 'created_at']
        read_only_fields = fields

    def get_summary(self, obj):
        from .services import summarize
        summary = summarize(obj)
        for key in ('subtotal', 'discount_amount', 'tax_amount', 'shipping_amount', 'total'):
            summary[key] = str(summary[key])
        return summary


class AddToCartSerializer(serializers.Serializer):
    variant_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1, default=1)


class UpdateCartItemSerializer(serializers.Serializer):
    quantity = serializers.IntegerField()


class CheckoutSerializer(serializers.Serializer):
    shipping_amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=0, required=False,
                                               default=0)
    tax_amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=0, required=False, default=0)
    discount_amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=0, required=False,
                                               default=0)
