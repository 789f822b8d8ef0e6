import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
from django.shortcuts import get_object_or_404
from django.db import IntegrityError
from marketplace.rbac.services import user_has_permission
from .models import Location
from .serializers import LocationSerializer

logger = logging.getLogger('marketplace.locations')


def _forbidden(request, permission):
    if not request.user or not request.user.is_authenticated:
        return Response({'error': 'Authentication credentials were not provided.'}, status=status.HTTP_401_UNAUTHORIZED)
    if not user_has_permission(request.user, permission):
        logger.warning(f"User {request.user.username} lacks {permission} for location write")
        return Response({'error': f'Missing permission: {permission}'}, status=status.HTTP_403_FORBIDDEN)
    return None


@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
def location_list_create(request):
    """List locations (public) or create a location (inventory:create)"""
    if request.method == 'GET':
        locations = Location.objects.select_related('organization')
        organization = request.query_params.get('organization')
        if organization:
            locations = locations.filter(organization_id=organization)
        if request.query_params.get('include_inactive') != 'true':
            locations = locations.filter(is_active=True)
        return Response(LocationSerializer(locations, many=True).data)

    denied = _forbidden(request, 'inventory:create')
    if denied:
        return denied

    serializer = LocationSerializer(data=request.data)
    if serializer.is_valid():
        try:
            location = serializer.save()
        except IntegrityError as e:
            logger.error(f"IntegrityError creating location: {str(e)}", exc_info=True)
            return Response({'error': 'Database error occurred while creating location'}, status=status.HTTP_400_BAD_REQUEST)
        logger.info(f"Location '{location.name}' created by {request.user.username}")
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    logger.warning(f"Location creation validation failed: {serializer.errors}")
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([AllowAny])
def location_detail(request, pk):
    """Retrieve (public), update (inventory:update) or delete (inventory:delete) a location"""
    location = get_object_or_404(Location, pk=pk)

    if request.method == 'GET':
        return Response(LocationSerializer(location).data)

    if request.method in ('PUT', 'PATCH'):
        denied = _forbidden(request, 'inventory:update')
        if denied:
            return denied
        serializer = LocationSerializer(location, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            logger.info(f"Location {pk} updated by {request.user.username}")
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    denied = _forbidden(request, 'inventory:delete')
    if denied:
        return denied
    if location.inventory_records.filter(reserved__gt=0).exists():
        return Response({'error': 'Cannot delete a location with reserved inventory'}, status=status.HTTP_400_BAD_REQUEST)
    logger.info(f"User {request.user.username} deleting location {pk} ({location.name})")
    location.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)
