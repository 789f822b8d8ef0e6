import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
from marketplace.core.exceptions import ServiceError
from marketplace.core.utils import create_audit_log, parse_int
from marketplace.rbac.permissions import require_permission
from .serializers import (
    VariantInventorySerializer, InventoryMovementSerializer, LocationInventorySerializer,
    AdjustInventorySerializer, TransferInventorySerializer, StockAllocationSerializer,
)
from . import services

logger = logging.getLogger('marketplace.inventory')

CanView = require_permission('inventory:view')
CanUpdate = require_permission('inventory:update')
CanAdjust = require_permission('inventory:adjust')
CanTransfer = require_permission('inventory:transfer')


# Public inventory views
@api_view(['GET'])
@permission_classes([AllowAny])
def variant_availability(request, variant_id):
    """Whether ``quantity`` units can be reserved (at one location or overall)"""
    quantity = parse_int(request.query_params.get('quantity'), 1)
    location_id = parse_int(request.query_params.get('location_id'), None)
    available = services.check_availability(variant_id, quantity, location_id=location_id)
    return Response({
        'variant_id': variant_id,
        'location_id': location_id,
        'quantity': quantity,
        'available': available,
    })


@api_view(['GET'])
@permission_classes([AllowAny])
def variant_inventory(request, variant_id):
    """Inventory rows of a variant, one per location"""
    try:
        services.get_variant(variant_id)
    except ServiceError as e:
        return e.to_response()
    records = services.get_variant_inventory(variant_id)
    return Response(VariantInventorySerializer(records, many=True).data)


@api_view(['GET'])
@permission_classes([AllowAny])
def variant_total(request, variant_id):
    return Response(services.get_total(variant_id))


@api_view(['GET'])
@permission_classes([CanView])
def variant_best_location(request, variant_id):
    quantity = parse_int(request.query_params.get('quantity'), 1)
    return Response({
        'variant_id': variant_id,
        'quantity': quantity,
        'location_id': services.find_best_location(variant_id, quantity),
    })


@api_view(['GET'])
@permission_classes([AllowAny])
def location_inventory(request, pk):
    """Location with its inventory rows"""
    try:
        location, records = services.location_with_inventory(pk)
    except ServiceError as e:
        return e.to_response()
    return Response(LocationInventorySerializer(location, context={'records': records}).data)


# Admin inventory views
@api_view(['GET'])
@permission_classes([CanView])
def inventory_list(request):
    """All inventory rows, filterable by variant_id and location_id (paginated)"""
    params = request.query_params
    return Response(services.list_inventory(
        variant_id=parse_int(params.get('variant_id'), None),
        location_id=parse_int(params.get('location_id'), None),
        page=params.get('page', 1),
        limit=params.get('limit', 10),
        serializer_class=VariantInventorySerializer,
    ))


@api_view(['GET'])
@permission_classes([CanView])
def low_stock(request):
    threshold = parse_int(request.query_params.get('threshold'), services.DEFAULT_LOW_STOCK_THRESHOLD)
    records = services.get_low_stock(threshold)
    return Response(VariantInventorySerializer(records, many=True).data)


@api_view(['GET'])
@permission_classes([CanView])
def movement_list(request):
    """Movement ledger, newest first (paginated)"""
    params = request.query_params
    return Response(services.list_movements(
        variant_id=parse_int(params.get('variant_id'), None),
        location_id=parse_int(params.get('location_id'), None),
        order_id=parse_int(params.get('order_id'), None),
        reason=params.get('reason'),
        page=params.get('page', 1),
        limit=params.get('limit', 20),
        serializer_class=InventoryMovementSerializer,
    ))


@api_view(['POST'])
@permission_classes([CanAdjust])
def adjust_inventory(request):
    serializer = AdjustInventorySerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    try:
        record = services.adjust(
            data['variant_id'], data['location_id'], data['delta'], data['reason'],
            order_id=data.get('order_id'), note=data.get('note'), user=request.user,
        )
    except ServiceError as e:
        logger.warning(f"Inventory adjust by {request.user.username} rejected: {e.message}")
        return e.to_response()

    create_audit_log(
        request=request,
        action='stock_adjust',
        model_name='VariantInventory',
        object_id=record.pk,
        object_name=record.variant.sku,
        changes={
            'location_id': record.location_id,
            'delta': data['delta'],
            'reason': data['reason'],
            'note': data.get('note'),
            'new_quantity': record.quantity,
        },
    )
    return Response(VariantInventorySerializer(record).data)


@api_view(['POST'])
@permission_classes([CanTransfer])
def transfer_inventory(request):
    serializer = TransferInventorySerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    try:
        result = services.transfer(
            data['variant_id'], data['from_location_id'], data['to_location_id'], data['quantity'],
            note=data.get('note'), user=request.user,
        )
    except ServiceError as e:
        logger.warning(f"Inventory transfer by {request.user.username} rejected: {e.message}")
        return e.to_response()

    create_audit_log(
        request=request,
        action='stock_transfer',
        model_name='VariantInventory',
        object_id=result['from'].pk,
        object_name=result['from'].variant.sku,
        changes={
            'from_location_id': data['from_location_id'],
            'to_location_id': data['to_location_id'],
            'quantity': data['quantity'],
        },
    )
    return Response({
        'from': VariantInventorySerializer(result['from']).data,
        'to': VariantInventorySerializer(result['to']).data,
    })


def _allocation_view(request, operation):
    serializer = StockAllocationSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    try:
        if operation == 'fulfill':
            record = services.fulfill(data['variant_id'], data['location_id'], data['quantity'],
                                      order_id=data.get('order_id'), user=request.user)
        elif operation == 'reserve':
            record = services.reserve(data['variant_id'], data['location_id'], data['quantity'])
        else:
            record = services.release(data['variant_id'], data['location_id'], data['quantity'])
    except ServiceError as e:
        logger.warning(f"Inventory {operation} by {request.user.username} rejected: {e.message}")
        return e.to_response()
    return Response(VariantInventorySerializer(record).data)


@api_view(['POST'])
@permission_classes([CanUpdate])
def reserve_inventory(request):
    return _allocation_view(request, 'reserve')


@api_view(['POST'])
@permission_classes([CanUpdate])
def release_inventory(request):
    return _allocation_view(request, 'release')


@api_view(['POST'])
@permission_classes([CanUpdate])
def fulfill_inventory(request):
    return _allocation_view(request, 'fulfill')
