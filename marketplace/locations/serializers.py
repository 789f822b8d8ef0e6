from rest_framework import serializers
from .models import Location


class LocationSerializer(serializers.ModelSerializer):
    organization_name = serializers.CharField(source='organization.name', read_only=True)

    class Meta:
        model = Location
        fields = ['id', 'organization', 'organization_name', 'name', 'address_line1', 'address_line2', 'city',
                  'state', 'postal_code', 'country', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_country(self, value):
        if value:
            if len(value) != 2 or not value.isalpha():
                raise serializers.ValidationError('Country must be a two-letter ISO code')
            return value.upper()
        return value
