import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from marketplace.core.exceptions import NotFoundError, ServiceError
from marketplace.core.utils import create_audit_log, parse_int
from marketplace.inventory.serializers import InventoryMovementSerializer
from marketplace.inventory.services import list_movements
from marketplace.organizations.services import is_member
from marketplace.rbac.permissions import is_platform_admin, require_permission
from marketplace.rbac.services import user_has_permission
from .serializers import (
    OrderSerializer, OrderStatusHistorySerializer, OrderCreateSerializer,
    OrderStatusUpdateSerializer, OrderCancelSerializer, RefundSerializer, RefundCreateSerializer,
    RefundDecisionSerializer, RefundRejectSerializer, RefundFilterSerializer,
)
from . import refunds, services

logger = logging.getLogger('marketplace.orders')

CanManageOrders = require_permission('order:manage')


def _is_order_staff(user):
    return is_platform_admin(user) or user_has_permission(user, 'order:manage')


def _get_visible_order(request, pk):
    """Order owned by the requester, or any order for staff; raises ServiceError otherwise"""
    order = services.get_order(pk)
    if order.user_id != request.user.pk and not _is_order_staff(request.user):
        raise NotFoundError(f"Order with ID {pk} not found")
    return order


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def order_list_create(request):
    """List own orders (staff see all) or place an order"""
    if request.method == 'GET':
        return Response(services.list_orders(
            request.user,
            status=request.query_params.get('status'),
            page=request.query_params.get('page', 1),
            limit=request.query_params.get('limit', 10),
            serializer_class=OrderSerializer,
            include_all=_is_order_staff(request.user),
        ))

    serializer = OrderCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    try:
        order = services.create_order(
            request.user,
            [dict(item) for item in data['items']],
            shipping_amount=data['shipping_amount'],
            tax_amount=data['tax_amount'],
            discount_amount=data['discount_amount'],
        )
    except ServiceError as e:
        logger.warning(f"Order placement by {request.user.username} failed: {e.message}")
        return e.to_response()

    create_audit_log(
        request=request,
        action='order_create',
        model_name='Order',
        object_id=order.pk,
        object_reference=order.external_ref,
        changes={'total_amount': str(order.total_amount), 'items': len(data['items'])},
    )
    return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_detail(request, pk):
    try:
        order = _get_visible_order(request, pk)
    except ServiceError as e:
        return e.to_response()
    return Response(OrderSerializer(order).data)


@api_view(['PATCH', 'POST'])
@permission_classes([CanManageOrders])
def order_status_update(request, pk):
    """Move an order to a new status (fulfills stock on shipped, releases funds on delivered)"""
    serializer = OrderStatusUpdateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    try:
        order = services.update_status(pk, data['status'], data.get('note'), user=request.user)
    except ServiceError as e:
        logger.warning(f"Status change of order {pk} to {data['status']} rejected: {e.message}")
        return e.to_response()

    create_audit_log(
        request=request,
        action='order_status',
        model_name='Order',
        object_id=order.pk,
        object_reference=order.external_ref,
        changes={'status': data['status'], 'note': data.get('note')},
    )
    return Response(OrderSerializer(order).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def order_cancel(request, pk):
    serializer = OrderCancelSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        _get_visible_order(request, pk)
        order = services.cancel(pk, serializer.validated_data['reason'], user=request.user)
    except ServiceError as e:
        return e.to_response()

    create_audit_log(
        request=request,
        action='order_cancel',
        model_name='Order',
        object_id=order.pk,
        object_reference=order.external_ref,
        changes={'reason': order.cancel_reason},
    )
    return Response(OrderSerializer(order).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_history(request, pk):
    try:
        order = _get_visible_order(request, pk)
    except ServiceError as e:
        return e.to_response()
    return Response(OrderStatusHistorySerializer(order.status_history.all(), many=True).data)


@api_view(['GET'])
@permission_classes([require_permission('inventory:view')])
def order_movements(request, pk):
    """Inventory movements recorded against an order"""
    return Response(list_movements(
        order_id=pk,
        page=request.query_params.get('page', 1),
        limit=request.query_params.get('limit', 20),
        serializer_class=InventoryMovementSerializer,
    ))


# Refund views
def _can_view_refund(user, refund):
    return refund.order.user_id == user.pk or _is_order_staff(user) or is_member(user, refund.organization_id)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def order_refunds(request, pk):
    """Refunds of an order, or a new refund request for delivered items (order owner)"""
    try:
        order = _get_visible_order(request, pk)
    except ServiceError as e:
        return e.to_response()

    if request.method == 'GET':
        return Response(RefundSerializer(order.refunds.prefetch_related('items__order_item'), many=True).data)

    serializer = RefundCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    try:
        created = refunds.create_refund(request.user, order.pk, [dict(item) for item in data['items']],
                                        data['reason'])
    except ServiceError as e:
        logger.warning(f"Refund request for order {pk} by {request.user.username} failed: {e.message}")
        return e.to_response()

    for refund in created:
        create_audit_log(
            request=request,
            action='refund_create',
            model_name='Refund',
            object_id=refund.pk,
            object_reference=order.external_ref,
            changes={'amount': str(refund.amount), 'organization_id': refund.organization_id},
        )
    return Response(RefundSerializer(created, many=True).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([CanManageOrders])
def refund_list(request):
    """All refunds with status, organization and order filters (paginated)"""
    filters = RefundFilterSerializer(data=request.query_params)
    if not filters.is_valid():
        return Response(filters.errors, status=status.HTTP_400_BAD_REQUEST)
    return Response(refunds.list_refunds(
        page=request.query_params.get('page', 1),
        limit=request.query_params.get('limit', 10),
        serializer_class=RefundSerializer,
        **filters.validated_data,
    ))


@api_view(['GET'])
@permission_classes([CanManageOrders])
def refund_statistics(request):
    return Response(refunds.refund_stats(parse_int(request.query_params.get('organization_id'), None)))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def refund_detail(request, pk):
    try:
        refund = refunds.get_refund(pk)
    except ServiceError as e:
        return e.to_response()
    if not _can_view_refund(request.user, refund):
        return Response({'error': f'Refund {pk} not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response(RefundSerializer(refund).data)


def _decide(request, pk, action, handler, serializer_class, field):
    serializer = serializer_class(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    value = serializer.validated_data.get(field)
    try:
        refund = handler(pk, request.user, value) if field else handler(pk, request.user)
    except ServiceError as e:
        logger.warning(f"{action} of refund {pk} by {request.user.username} rejected: {e.message}")
        return e.to_response()

    create_audit_log(
        request=request,
        action=action,
        model_name='Refund',
        object_id=refund.pk,
        object_reference=refund.order.external_ref,
        changes={'status': refund.status, field or 'note': value},
    )
    return Response(RefundSerializer(refund).data)


@api_view(['POST'])
@permission_classes([CanManageOrders])
def refund_approve(request, pk):
    return _decide(request, pk, 'refund_approve', refunds.approve_refund, RefundDecisionSerializer, 'note')


@api_view(['POST'])
@permission_classes([CanManageOrders])
def refund_reject(request, pk):
    return _decide(request, pk, 'refund_reject', refunds.reject_refund, RefundRejectSerializer, 'reason')


@api_view(['POST'])
@permission_classes([CanManageOrders])
def refund_complete(request, pk):
    """Mark an approved refund as paid out"""
    return _decide(request, pk, 'refund_complete', refunds.complete_refund, RefundDecisionSerializer, None)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def refund_cancel(request, pk):
    """Withdraw one's own refund request"""
    return _decide(request, pk, 'refund_cancel', refunds.cancel_refund, RefundDecisionSerializer, None)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def organization_refunds(request, organization_id):
    """Refunds against a vendor organization (members and order managers)"""
    if not (_is_order_staff(request.user) or is_member(request.user, organization_id)):
        return Response({'error': 'You are not a member of this organization'}, status=status.HTTP_403_FORBIDDEN)
    return Response(refunds.list_refunds(
        organization_id=organization_id,
        status=request.query_params.get('status'),
        page=request.query_params.get('page', 1),
        limit=request.query_params.get('limit', 10),
        serializer_class=RefundSerializer,
    ))
