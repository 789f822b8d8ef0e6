import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
from marketplace.core.exceptions import ServiceError
from marketplace.core.utils import create_audit_log
from marketplace.rbac.services import user_has_permission
from . import services

logger = logging.getLogger('marketplace.cms')


def _forbidden(request):
    if not request.user or not request.user.is_authenticated:
        return Response({'error': 'Authentication credentials were not provided.'},
                        status=status.HTTP_401_UNAUTHORIZED)
    if not user_has_permission(request.user, 'cms:update'):
        return Response({'error': 'Missing permission: cms:update'},
                        status=status.HTTP_403_FORBIDDEN)
    return None


@api_view(['GET', 'PUT'])
@permission_classes([AllowAny])
def homepage(request):
    """Whole homepage (public); PUT replaces the given sections"""
    if request.method == 'GET':
        try:
            return Response(services.get_homepage())
        except ServiceError as e:
            return e.to_response()

    denied = _forbidden(request)
    if denied:
        return denied
    if not isinstance(request.data, dict):
        return Response({'error': 'Expected an object of sections'}, status=status.HTTP_400_BAD_REQUEST)
    try:
        data = services.update_homepage(request.data)
    except ServiceError as e:
        return e.to_response()

    create_audit_log(
        request=request,
        action='cms_update',
        model_name='HomepageContent',
        object_id='homepage',
        changes={'sections': sorted(request.data.keys())},
    )
    return Response(data)


@api_view(['GET', 'PUT'])
@permission_classes([AllowAny])
def homepage_section(request, section):
    if request.method == 'GET':
        try:
            return Response({'section': section, 'content': services.get_section(section)})
        except ServiceError as e:
            return e.to_response()

    denied = _forbidden(request)
    if denied:
        return denied
    content = request.data.get('content', request.data) if isinstance(request.data, dict) else request.data
    try:
        data = services.update_section(section, content)
    except ServiceError as e:
        return e.to_response()

    logger.info(f"Section {section} updated by {request.user.username}")
    create_audit_log(
        request=request,
        action='cms_update',
        model_name='HomepageContent',
        object_id='homepage',
        changes={'sections': [section]},
    )
    return Response(data)
