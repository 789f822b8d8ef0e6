import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.contrib.auth import get_user_model
from django.shortcuts import get_object_or_404
from marketplace.core.exceptions import ServiceError
from .models import Role, Permission
from .permissions import IsPlatformAdmin
from .serializers import (
    RoleSerializer, PermissionSerializer, PermissionIdsSerializer, UserRoleSerializer
)
from . import services

logger = logging.getLogger('marketplace.rbac')

User = get_user_model()


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsPlatformAdmin])
def role_list_create(request):
    """List roles or create a role"""
    if request.method == 'GET':
        roles = Role.objects.prefetch_related('role_permissions__permission')
        return Response(RoleSerializer(roles, many=True).data)

    serializer = RoleSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        role = services.create_role(**serializer.validated_data)
    except ServiceError as e:
        return e.to_response()
    return Response(RoleSerializer(role).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsPlatformAdmin])
def permission_list_create(request):
    """List permissions or create a permission"""
    if request.method == 'GET':
        permissions = Permission.objects.all()
        resource = request.query_params.get('resource')
        if resource:
            permissions = permissions.filter(resource=resource)
        return Response(PermissionSerializer(permissions, many=True).data)

    serializer = PermissionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        permission = services.create_permission(**serializer.validated_data)
    except ServiceError as e:
        return e.to_response()
    logger.info(f"User {request.user.username} created permission {permission.name}")
    return Response(PermissionSerializer(permission).data, status=status.HTTP_201_CREATED)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsPlatformAdmin])
def permission_detail(request, pk):
    """Delete a permission that no role uses"""
    try:
        result = services.delete_permission(pk)
    except ServiceError as e:
        return e.to_response()
    return Response(result)


@api_view(['POST', 'DELETE'])
@permission_classes([IsAuthenticated, IsPlatformAdmin])
def role_permissions(request, pk):
    """Attach permissions to a role (POST) or detach one (DELETE ?permission_id=)"""
    role = get_object_or_404(Role, pk=pk)
    try:
        if request.method == 'POST':
            serializer = PermissionIdsSerializer(data=request.data)
            if not serializer.is_valid():
                return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
            services.assign_permissions(role, serializer.validated_data['permission_ids'])
            return Response(RoleSerializer(role).data)

        permission_id = request.query_params.get('permission_id')
        if not permission_id:
            return Response({'error': 'permission_id is required'}, status=status.HTTP_400_BAD_REQUEST)
        services.remove_permission(role, permission_id)
        return Response(status=status.HTTP_204_NO_CONTENT)
    except ServiceError as e:
        return e.to_response()


@api_view(['GET', 'POST', 'DELETE'])
@permission_classes([IsAuthenticated, IsPlatformAdmin])
def user_roles(request, user_id):
    """List, assign or revoke roles for a user"""
    user = get_object_or_404(User, pk=user_id)
    if request.method == 'GET':
        roles = Role.objects.filter(user_roles__user=user)
        return Response({
            'roles': RoleSerializer(roles, many=True).data,
            'permissions': sorted(services.get_user_permissions(user)),
        })

    serializer = UserRoleSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        role = services.get_role(serializer.validated_data['role_id'])
        if request.method == 'POST':
            services.assign_role(user, role)
            return Response({'message': f"Role '{role.name}' assigned"}, status=status.HTTP_201_CREATED)
        services.revoke_role(user, role)
        return Response(status=status.HTTP_204_NO_CONTENT)
    except ServiceError as e:
        return e.to_response()
