from rest_framework import serializers
from .models import Role, Permission


class PermissionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Permission
        fields = ['id', 'name', 'description', 'resource', 'action', 'scope', 'created_at']
        read_only_fields = ['created_at']
        # uniqueness is reported as 409 by the service layer
        validators = []
        extra_kwargs = {'name': {'validators': []}}


class RoleSerializer(serializers.ModelSerializer):
    permissions = serializers.SerializerMethodField()

    class Meta:
        model = Role
        fields = ['id', 'name', 'description', 'scope', 'permissions', 'created_at']
        read_only_fields = ['created_at']
        extra_kwargs = {'name': {'validators': []}}

    def get_permissions(self, obj):
        return [rp.permission.name for rp in obj.role_permissions.select_related('permission')]


class PermissionIdsSerializer(serializers.Serializer):
    permission_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)


class UserRoleSerializer(serializers.Serializer):
    role_id = serializers.IntegerField()
