from rest_framework import serializers
from .models import Organization, OrganizationType, OrganizationUser, OrganizationSettings


class OrganizationTypeSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrganizationType
        fields = ['id', 'code', 'display_name', 'description', 'default_fee_type', 'default_fee_amount',
                  'is_active', 'requires_approval', 'created_at']
        read_only_fields = ['created_at']


class OrganizationSettingsSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrganizationSettings
        fields = ['notification_email', 'timezone', 'language', 'date_format', 'return_policy',
                  'privacy_policy', 'terms_conditions', 'shipping_policy', 'updated_at']
        read_only_fields = ['updated_at']


class OrganizationMemberSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source='user.username', read_only=True)
    email = serializers.CharField(source='user.email', read_only=True)
    role_name = serializers.CharField(source='role.name', read_only=True)

    class Meta:
        model = OrganizationUser
        fields = ['id', 'user', 'username', 'email', 'role', 'role_name', 'is_active', 'invited_by', 'joined_at']
        read_only_fields = ['invited_by', 'joined_at']


class OrganizationSerializer(serializers.ModelSerializer):
    organization_type = serializers.SlugRelatedField(slug_field='code', read_only=True)
    type_name = serializers.CharField(source='organization_type.display_name', read_only=True)

    class Meta:
        model = Organization
        fields = ['id', 'organization_type', 'type_name', 'status', 'name', 'slug', 'email', 'phone',
                  'description', 'address_line1', 'address_line2', 'city', 'state', 'postal_code',
                  'country', 'fee_type', 'fee_amount', 'currency', 'is_active', 'approved_at',
                  'approved_by', 'rejected_at', 'rejection_reason', 'created_at', 'updated_at']
        read_only_fields = fields


class OrganizationCreateSerializer(serializers.Serializer):
    organization_type = serializers.CharField(max_length=50)
    name = serializers.CharField(max_length=255)
    slug = serializers.SlugField(max_length=100)
    email = serializers.EmailField(max_length=255)
    phone = serializers.CharField(max_length=20)
    description = serializers.CharField(required=False, allow_blank=True)
    address_line1 = serializers.CharField(max_length=255, required=False, allow_blank=True)
    address_line2 = serializers.CharField(max_length=255, required=False, allow_blank=True)
    city = serializers.CharField(max_length=100, required=False, allow_blank=True)
    state = serializers.CharField(max_length=100, required=False, allow_blank=True)
    postal_code = serializers.CharField(max_length=20, required=False, allow_blank=True)
    country = serializers.CharField(min_length=2, max_length=2, required=False, allow_blank=True)
    role_id = serializers.IntegerField(required=False)
    attributes = serializers.DictField(required=False)


class OrganizationUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Organization
        fields = ['name', 'phone', 'description', 'address_line1', 'address_line2', 'city', 'state',
                  'postal_code', 'country']


class ApproveSerializer(serializers.Serializer):
    fee_type = serializers.ChoiceField(choices=['percentage', 'fixed'], required=False)
    fee_amount = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, required=False)


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=1000)


class MemberAddSerializer(serializers.Serializer):
    user_id = serializers.IntegerField()
    role_id = serializers.IntegerField(required=False)
