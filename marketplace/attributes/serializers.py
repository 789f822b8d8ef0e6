from rest_framework import serializers
from .models import AttributeDefinition, AttributeOption


class AttributeOptionSerializer(serializers.ModelSerializer):
    class Meta:
        model = AttributeOption
        fields = ['value', 'label', 'position', 'is_active']
        read_only_fields = ['position', 'is_active']


class AttributeDefinitionSerializer(serializers.ModelSerializer):
    options = AttributeOptionSerializer(many=True, required=False)
    organization_types = serializers.ListField(
        child=serializers.CharField(max_length=50), write_only=True, allow_empty=False
    )
    applicable_types = serializers.SerializerMethodField()

    class Meta:
        model = AttributeDefinition
        fields = ['id', 'key', 'label', 'description', 'data_type', 'is_required', 'min_value', 'max_value',
                  'min_length', 'max_length', 'pattern', 'group', 'display_order', 'placeholder', 'help_text',
                  'is_active', 'options', 'organization_types', 'applicable_types', 'created_at']
        read_only_fields = ['created_at']
        # duplicate keys are reported as 409 by the service layer
        extra_kwargs = {'key': {'validators': []}}

    def get_applicable_types(self, obj):
        return [t.organization_type for t in obj.applicable_types.all()]

    def validate_options(self, value):
        values = [option['value'] for option in value]
        if len(values) != len(set(values)):
            raise serializers.ValidationError('Option values must be unique')
        return value

    def validate(self, attrs):
        min_value, max_value = attrs.get('min_value'), attrs.get('max_value')
        if min_value is not None and max_value is not None and min_value > max_value:
            raise serializers.ValidationError({'min_value': 'min_value cannot exceed max_value'})
        min_length, max_length = attrs.get('min_length'), attrs.get('max_length')
        if min_length is not None and max_length is not None and min_length > max_length:
            raise serializers.ValidationError({'min_length': 'min_length cannot exceed max_length'})
        return attrs
