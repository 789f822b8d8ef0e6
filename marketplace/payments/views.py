import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import AllowAny, IsAuthenticated
from marketplace.core.exceptions import ServiceError
from marketplace.core.utils import create_audit_log
from marketplace.orders.models import Order
from marketplace.rbac.permissions import is_platform_admin
from .serializers import PaymentSerializer, InitiatePaymentSerializer
from . import services

logger = logging.getLogger('marketplace.payments')


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def payment_initiate(request):
    """Start a payment for one of the requester's orders"""
    serializer = InitiatePaymentSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = dict(serializer.validated_data)
    order_id = data.pop('order_id')
    gateway = data.pop('gateway', None)

    try:
        payment, result = services.initiate(order_id, gateway, user=request.user, **data)
    except ServiceError as e:
        logger.warning(f"Payment initiation for order {order_id} by {request.user.username} failed: {e.message}")
        return e.to_response()

    create_audit_log(
        request=request,
        action='payment_initiate',
        model_name='Payment',
        object_id=payment.pk,
        object_reference=payment.transaction_id,
        changes={'order_id': order_id, 'gateway': payment.gateway, 'status': payment.status},
    )
    return Response({
        'payment': PaymentSerializer(payment).data,
        'redirect_url': result.redirect_url,
        'message': result.message,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def payment_verify(request, transaction_id):
    try:
        payment = services.get_payment(transaction_id)
        if payment.order.user_id != request.user.pk and not is_platform_admin(request.user):
            return Response({'error': f'Payment with transaction ID {transaction_id} not found'},
                            status=status.HTTP_404_NOT_FOUND)
        payment, result = services.verify(transaction_id)
    except ServiceError as e:
        return e.to_response()

    create_audit_log(
        request=request,
        action='payment_update',
        model_name='Payment',
        object_id=payment.pk,
        object_reference=payment.transaction_id,
        changes={'status': payment.status, 'source': 'verify'},
    )
    return Response({
        'success': result.success,
        'payment': PaymentSerializer(payment).data,
        'message': result.message,
    })


@api_view(['POST'])
@permission_classes([AllowAny])
def payment_callback(request, gateway):
    """Webhook endpoint for gateway notifications"""
    payload = request.data.dict() if hasattr(request.data, 'dict') else dict(request.data)
    try:
        payment = services.handle_callback(gateway, payload)
    except ServiceError as e:
        logger.warning(f"{gateway} callback rejected: {e.message}")
        return e.to_response()

    create_audit_log(
        action='payment_update',
        model_name='Payment',
        object_id=payment.pk,
        object_reference=payment.transaction_id,
        changes={'status': payment.status, 'source': f'{gateway} callback'},
    )
    return Response({
        'success': True,
        'message': 'Callback processed successfully',
        'payment': {'id': payment.pk, 'transaction_id': payment.transaction_id, 'status': payment.status},
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_payments(request, order_id):
    order = Order.objects.filter(pk=order_id).first()
    if order is None or (order.user_id != request.user.pk and not is_platform_admin(request.user)):
        return Response({'error': f'Order {order_id} not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response(PaymentSerializer(services.list_order_payments(order_id), many=True).data)
