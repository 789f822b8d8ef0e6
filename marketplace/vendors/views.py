import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from marketplace.core.exceptions import ServiceError
from marketplace.core.utils import paginate_queryset
from marketplace.organizations.services import get_organization, is_member
from marketplace.rbac.permissions import IsPlatformAdmin, is_platform_admin
from .serializers import VendorBalanceSerializer, VendorBalanceTransactionSerializer, PayoutSerializer
from . import services

logger = logging.getLogger('marketplace.vendors')


def _can_view(user, organization_id):
    return is_platform_admin(user) or is_member(user, organization_id)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def vendor_balance(request, organization_id):
    """Current balance of a vendor organization (members and admins)"""
    if not _can_view(request.user, organization_id):
        return Response({'error': 'You are not a member of this organization'}, status=status.HTTP_403_FORBIDDEN)
    try:
        get_organization(organization_id)
    except ServiceError as e:
        return e.to_response()
    balance = services.get_or_create_balance(organization_id)
    return Response(VendorBalanceSerializer(balance).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def vendor_balance_transactions(request, organization_id):
    """Balance ledger, newest first (paginated, filterable by type)"""
    if not _can_view(request.user, organization_id):
        return Response({'error': 'You are not a member of this organization'}, status=status.HTTP_403_FORBIDDEN)
    try:
        transactions = services.list_transactions(organization_id, request.query_params.get('type'))
    except ServiceError as e:
        return e.to_response()
    return Response(paginate_queryset(
        transactions,
        page=request.query_params.get('page', 1),
        limit=request.query_params.get('limit', 20),
        serializer_class=VendorBalanceTransactionSerializer,
    ))


@api_view(['POST'])
@permission_classes([IsPlatformAdmin])
def vendor_payout(request, organization_id):
    """Record a payout from the available balance (platform admins)"""
    serializer = PayoutSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    try:
        get_organization(organization_id)
        balance = services.record_payout(
            organization_id, data['amount'],
            reference_id=data.get('reference') or None,
            description=data.get('description') or None,
        )
    except ServiceError as e:
        logger.warning(f"Payout for organization {organization_id} rejected: {e.message}")
        return e.to_response()
    logger.info(f"User {request.user.username} recorded payout of {data['amount']} for organization {organization_id}")
    return Response(VendorBalanceSerializer(balance).data, status=status.HTTP_201_CREATED)
