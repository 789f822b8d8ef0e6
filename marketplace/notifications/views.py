import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from marketplace.core.exceptions import ServiceError
from marketplace.core.utils import paginate_queryset
from marketplace.rbac.permissions import IsPlatformAdmin
from .models import NotificationTemplate
from .serializers import (
    NotificationSerializer, NotificationPreferenceSerializer, NotificationTemplateSerializer,
)
from . import services

logger = logging.getLogger('marketplace.notifications')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def notification_list(request):
    """Own notifications, newest first"""
    unread_only = request.query_params.get('unread', '').lower() in ('1', 'true', 'yes')
    notifications = services.list_notifications(
        request.user,
        unread_only=unread_only,
        channel=request.query_params.get('channel'),
    )
    return Response(paginate_queryset(
        notifications,
        page=request.query_params.get('page', 1),
        limit=request.query_params.get('limit', 20),
        serializer_class=NotificationSerializer,
    ))


@api_view(['POST', 'PATCH'])
@permission_classes([IsAuthenticated])
def notification_mark_read(request, pk):
    try:
        notification = services.mark_as_read(request.user, pk)
    except ServiceError as e:
        return e.to_response()
    return Response(NotificationSerializer(notification).data)


@api_view(['POST', 'PATCH'])
@permission_classes([IsAuthenticated])
def notification_mark_all_read(request):
    updated = services.mark_all_as_read(request.user)
    logger.debug(f"Marked {updated} notifications read for {request.user.username}")
    return Response({'updated': updated})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def notification_unread_count(request):
    return Response({'count': services.unread_count(request.user)})


@api_view(['GET', 'PUT', 'POST'])
@permission_classes([IsAuthenticated])
def notification_preferences(request):
    """List own preferences, or turn an event on/off for a channel"""
    if request.method == 'GET':
        return Response(NotificationPreferenceSerializer(services.get_preferences(request.user), many=True).data)

    serializer = NotificationPreferenceSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    try:
        preference = services.set_preference(request.user, data['event'], data['channel'], data.get('enabled', True))
    except ServiceError as e:
        return e.to_response()
    return Response(NotificationPreferenceSerializer(preference).data)


@api_view(['GET', 'POST'])
@permission_classes([IsPlatformAdmin])
def template_list_create(request):
    if request.method == 'GET':
        templates = NotificationTemplate.objects.all()
        event = request.query_params.get('event')
        if event:
            templates = templates.filter(event=event)
        return Response(NotificationTemplateSerializer(templates, many=True).data)

    serializer = NotificationTemplateSerializer(data=request.data)
    if serializer.is_valid():
        serializer.save()
        logger.info(f"Notification template {serializer.data['name']} created by {request.user.username}")
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsPlatformAdmin])
def template_detail(request, pk):
    try:
        template = NotificationTemplate.objects.get(pk=pk)
    except NotificationTemplate.DoesNotExist:
        return Response({'error': 'Notification template not found'}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        return Response(NotificationTemplateSerializer(template).data)

    if request.method == 'DELETE':
        template.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = NotificationTemplateSerializer(template, data=request.data, partial=request.method == 'PATCH')
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
