import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from marketplace.core.exceptions import ServiceError
from marketplace.rbac.permissions import require_permission
from marketplace.rbac.services import user_has_permission
from marketplace.organizations.services import is_member
from .serializers import AttributeDefinitionSerializer
from . import services

logger = logging.getLogger('marketplace.attributes')

CanCreateAttribute = require_permission('attribute:create')
CanReadAttribute = require_permission('attribute:read')


@api_view(['POST'])
@permission_classes([IsAuthenticated, CanCreateAttribute])
def definition_create(request):
    """Create an attribute definition"""
    serializer = AttributeDefinitionSerializer(data=request.data)
    if not serializer.is_valid():
        logger.warning(f"Attribute definition validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        definition = services.create_definition(serializer.validated_data)
    except ServiceError as e:
        return e.to_response()
    return Response(AttributeDefinitionSerializer(definition).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, CanReadAttribute])
def definition_list_by_type(request, organization_type):
    """Active definitions for an organization type"""
    definitions = services.list_definitions(organization_type)
    return Response(AttributeDefinitionSerializer(definitions, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def form_schema(request, organization_type):
    """JSON Schema for the registration form of an organization type"""
    return Response(services.generate_form_schema(organization_type))


def _can_edit(user, organization_id):
    return user_has_permission(user, 'organization:approve') or is_member(user, organization_id)


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def organization_attributes(request, organization_id):
    """Read or set an organization's attribute values"""
    if not _can_edit(request.user, organization_id):
        return Response({'error': 'You are not a member of this organization'}, status=status.HTTP_403_FORBIDDEN)
    try:
        if request.method == 'GET':
            return Response(services.get_attributes(organization_id))
        if not isinstance(request.data, dict):
            return Response({'error': 'Attributes must be an object'}, status=status.HTTP_400_BAD_REQUEST)
        attributes = services.set_attributes(organization_id, dict(request.data))
        logger.info(f"User {request.user.username} updated attributes of organization {organization_id}")
        return Response(attributes)
    except ServiceError as e:
        return e.to_response()


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def organization_attribute_delete(request, organization_id, key):
    if not _can_edit(request.user, organization_id):
        return Response({'error': 'You are not a member of this organization'}, status=status.HTTP_403_FORBIDDEN)
    try:
        services.delete_attribute(organization_id, key)
    except ServiceError as e:
        return e.to_response()
    return Response(status=status.HTTP_204_NO_CONTENT)
