import logging
from django.contrib.auth import get_user_model
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from marketplace.core.exceptions import ServiceError
from marketplace.core.utils import create_audit_log, paginate_queryset
from marketplace.rbac.permissions import require_permission
from marketplace.rbac.services import get_role, get_role_by_name, user_has_permission
from .models import OrganizationType
from .serializers import (
    OrganizationSerializer, OrganizationCreateSerializer, OrganizationUpdateSerializer,
    OrganizationTypeSerializer, OrganizationMemberSerializer, OrganizationSettingsSerializer,
    ApproveSerializer, ReasonSerializer, MemberAddSerializer,
)
from . import services

logger = logging.getLogger('marketplace.organizations')

CanApprove = require_permission('organization:approve')
User = get_user_model()


def _can_manage(user, organization_id):
    return user_has_permission(user, 'organization:approve') or services.is_member(user, organization_id)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def organization_list_create(request):
    """List organizations (admins see all, others their own) or register a new one"""
    if request.method == 'GET':
        organizations = services.list_organizations(
            status=request.query_params.get('status'),
            organization_type=request.query_params.get('type'),
            search=request.query_params.get('search'),
        )
        if not user_has_permission(request.user, 'organization:approve'):
            organizations = organizations.filter(members__user=request.user, members__is_active=True)
        return Response(paginate_queryset(
            organizations,
            page=request.query_params.get('page', 1),
            limit=request.query_params.get('limit', 10),
            serializer_class=OrganizationSerializer,
        ))

    serializer = OrganizationCreateSerializer(data=request.data)
    if not serializer.is_valid():
        logger.warning(f"Organization registration validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = dict(serializer.validated_data)
    attributes = data.pop('attributes', None)
    role_id = data.pop('role_id', None)
    try:
        role = get_role(role_id) if role_id else None
        organization = services.create_organization(request.user, data, attributes=attributes, role=role)
    except ServiceError as e:
        logger.warning(f"Organization registration by {request.user.username} rejected: {e.message}")
        return e.to_response()

    create_audit_log(
        request=request,
        action='create',
        model_name='Organization',
        object_id=organization.pk,
        object_name=organization.name,
        object_reference=organization.slug,
    )
    return Response(OrganizationSerializer(organization).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def organization_detail(request, pk):
    """Retrieve or update an organization (members and approvers only)"""
    try:
        organization = services.get_organization(pk)
    except ServiceError as e:
        return e.to_response()

    if not _can_manage(request.user, pk):
        return Response({'error': 'You are not a member of this organization'}, status=status.HTTP_403_FORBIDDEN)

    if request.method == 'GET':
        data = OrganizationSerializer(organization).data
        data['settings'] = _settings_data(organization)
        data['members'] = OrganizationMemberSerializer(
            organization.members.select_related('user', 'role'), many=True
        ).data
        return Response(data)

    serializer = OrganizationUpdateSerializer(organization, data=request.data, partial=True)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    organization = services.update_organization(pk, serializer.validated_data)
    return Response(OrganizationSerializer(organization).data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def organization_members(request, pk):
    """List members, or add an existing user to the organization (members and approvers only)"""
    try:
        organization = services.get_organization(pk)
    except ServiceError as e:
        return e.to_response()

    if not _can_manage(request.user, pk):
        return Response({'error': 'You are not a member of this organization'}, status=status.HTTP_403_FORBIDDEN)

    if request.method == 'GET':
        members = organization.members.select_related('user', 'role').order_by('joined_at', 'id')
        return Response(OrganizationMemberSerializer(members, many=True).data)

    serializer = MemberAddSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    user = get_object_or_404(User, pk=serializer.validated_data['user_id'])
    role_id = serializer.validated_data.get('role_id')
    try:
        role = get_role(role_id) if role_id else get_role_by_name(services.DEFAULT_STAFF_ROLE)
        membership = services.add_member(organization, user, role, invited_by=request.user)
    except ServiceError as e:
        logger.warning(f"Adding user {user.pk} to organization {pk} rejected: {e.message}")
        return e.to_response()

    create_audit_log(
        request=request,
        action='member_add',
        model_name='OrganizationUser',
        object_id=membership.pk,
        object_name=user.username,
        object_reference=organization.slug,
        changes={'role': role.name},
    )
    return Response(OrganizationMemberSerializer(membership).data, status=status.HTTP_201_CREATED)

def _settings_data(organization):
    settings_obj = getattr(organization, 'settings', None)
    return OrganizationSettingsSerializer(settings_obj).data if settings_obj else None


@api_view(['POST'])
@permission_classes([IsAuthenticated, CanApprove])
def organization_approve(request, pk):
    serializer = ApproveSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        organization = services.approve_organization(pk, request.user, **serializer.validated_data)
    except ServiceError as e:
        return e.to_response()
    create_audit_log(request=request, action='org_approve', model_name='Organization',
                     object_id=pk, object_name=organization.name,
                     changes={k: str(v) for k, v in serializer.validated_data.items()})
    return Response(OrganizationSerializer(organization).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, CanApprove])
def organization_reject(request, pk):
    serializer = ReasonSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        organization = services.reject_organization(pk, request.user, serializer.validated_data['reason'])
    except ServiceError as e:
        return e.to_response()
    create_audit_log(request=request, action='org_reject', model_name='Organization',
                     object_id=pk, object_name=organization.name, changes=serializer.validated_data)
    return Response(OrganizationSerializer(organization).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, CanApprove])
def organization_suspend(request, pk):
    serializer = ReasonSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        organization = services.suspend_organization(pk, request.user, serializer.validated_data['reason'])
    except ServiceError as e:
        return e.to_response()
    create_audit_log(request=request, action='org_suspend', model_name='Organization',
                     object_id=pk, object_name=organization.name, changes=serializer.validated_data)
    return Response(OrganizationSerializer(organization).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, CanApprove])
def organization_reactivate(request, pk):
    try:
        organization = services.reactivate_organization(pk, request.user)
    except ServiceError as e:
        return e.to_response()
    create_audit_log(request=request, action='org_reactivate', model_name='Organization',
                     object_id=pk, object_name=organization.name)
    return Response(OrganizationSerializer(organization).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, CanApprove])
def organization_pending(request):
    """Organizations waiting for a decision, oldest first"""
    organizations = services.list_organizations(status='pending_approval').order_by('created_at')
    return Response(paginate_queryset(
        organizations,
        page=request.query_params.get('page', 1),
        limit=request.query_params.get('limit', 10),
        serializer_class=OrganizationSerializer,
    ))


@api_view(['GET'])
@permission_classes([IsAuthenticated, CanApprove])
def organization_approval_stats(request):
    return Response(services.approval_stats())


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def organization_type_list_create(request):
    """List active organization types or create one (approvers only)"""
    if request.method == 'GET':
        types = OrganizationType.objects.filter(is_active=True)
        return Response(OrganizationTypeSerializer(types, many=True).data)

    if not user_has_permission(request.user, 'organization:approve'):
        return Response({'error': 'Only administrators can create organization types'}, status=status.HTTP_403_FORBIDDEN)
    serializer = OrganizationTypeSerializer(data=request.data)
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
