from rest_framework import serializers
from marketplace.locations.serializers import LocationSerializer
from .models import VariantInventory, InventoryMovement, MOVEMENT_REASON_CHOICES


class VariantInventorySerializer(serializers.ModelSerializer):
    available = serializers.IntegerField(read_only=True)
    sku = serializers.CharField(source='variant.sku', read_only=True)
    product_name = serializers.CharField(source='variant.product.name', read_only=True)
    location_name = serializers.CharField(source='location.name', read_only=True)

    class Meta:
        model = VariantInventory
        fields = ['id', 'variant', 'sku', 'product_name', 'location', 'location_name', 'quantity', 'reserved',
                  'available', 'updated_at']
        read_only_fields = fields


class InventoryMovementSerializer(serializers.ModelSerializer):
    sku = serializers.CharField(source='variant.sku', read_only=True)
    location_name = serializers.CharField(source='location.name', read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True)

    class Meta:
        model = InventoryMovement
        fields = ['id', 'variant', 'sku', 'location', 'location_name', 'order', 'delta', 'reason', 'note',
                  'created_by', 'created_by_username', 'created_at']
        read_only_fields = fields


class LocationInventorySerializer(LocationSerializer):
    inventory = serializers.SerializerMethodField()

    class Meta(LocationSerializer.Meta):
        fields = LocationSerializer.Meta.fields + ['inventory']

    def get_inventory(self, obj):
        records = self.context.get('records')
        if records is None:
            records = obj.inventory_records.select_related('variant__product')
        return VariantInventorySerializer(records, many=True).data


# Request payloads

class AdjustInventorySerializer(serializers.Serializer):
    variant_id = serializers.IntegerField()
    location_id = serializers.IntegerField()
    delta = serializers.IntegerField()
    reason = serializers.ChoiceField(choices=MOVEMENT_REASON_CHOICES)
    order_id = serializers.IntegerField(required=False, allow_null=True)
    note = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class TransferInventorySerializer(serializers.Serializer):
    variant_id = serializers.IntegerField()
    from_location_id = serializers.IntegerField()
    to_location_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)
    note = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class StockAllocationSerializer(serializers.Serializer):
    """Payload for reserve, release and fulfill"""
    variant_id = serializers.IntegerField()
    location_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)
    order_id = serializers.IntegerField(required=False, allow_null=True)
