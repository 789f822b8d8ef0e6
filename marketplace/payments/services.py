"""Payment initiation, verification and gateway callbacks"""
import logging

from django.conf import settings
from django.db import transaction

from marketplace.core.exceptions import BadRequestError, NotFoundError
from marketplace.orders.models import Order, OrderStatusHistory
from marketplace.rbac.permissions import is_platform_admin
from .gateways import get_gateway
from .models import Payment, TransactionLog, PAYMENT_STATUS_CHOICES, SUCCESSFUL_STATUSES

logger = logging.getLogger(__name__)

VALID_STATUSES = {value for value, _ in PAYMENT_STATUS_CHOICES}


def _advance_order(order, payment):
    """A captured payment moves a pending order to processing"""
    if payment.status != 'captured' or order.status != 'pending':
        return
    order.status = 'processing'
    order.save(update_fields=['status', 'updated_at'])
    OrderStatusHistory.objects.create(order=order, status='processing',
                                      note=f"Payment {payment.transaction_id} captured")
    logger.info(f"Order {order.pk} moved to processing after payment {payment.transaction_id}")


def _log(payment, event_type, status, payload=None, amount=None):
    return TransactionLog.objects.create(
        payment=payment,
        event_type=event_type,
        amount=amount if amount is not None else payment.amount,
        status=status,
        payload=payload or {},
    )


def initiate(order_id, gateway=None, user=None, **kwargs):
    """Start a payment for the order's total through ``gateway``"""
    try:
        order = Order.objects.get(pk=order_id)
    except Order.DoesNotExist:
        raise NotFoundError(f"Order {order_id} not found")

    if user is not None and order.user_id != user.pk and not is_platform_admin(user):
        raise NotFoundError(f"Order {order_id} not found")
    if order.status == 'cancelled':
        raise BadRequestError('Cannot pay for a cancelled order')
    if order.payments.filter(status__in=SUCCESSFUL_STATUSES).exists():
        raise BadRequestError('Order already paid')

    gateway_name = gateway or settings.PAYMENT_GATEWAY_DEFAULT
    adapter = get_gateway(gateway_name)
    logger.info(f"Initiating payment for order {order.pk} via {adapter.name}")

    result = adapter.initiate(order, order.total_amount, **kwargs)
    if not result.success:
        raise BadRequestError(result.message or 'Failed to initiate payment')

    with transaction.atomic():
        payment = Payment.objects.create(
            order=order,
            amount=order.total_amount,
            currency=order.currency,
            status=result.status,
            gateway=adapter.name,
            provider=adapter.provider,
            transaction_id=result.transaction_id,
            metadata=result.raw,
        )
        _log(payment, 'payment_initiated', result.status, result.raw)
        _advance_order(order, payment)

    return payment, result


def get_payment(transaction_id):
    try:
        return Payment.objects.select_related('order').get(transaction_id=transaction_id)
    except Payment.DoesNotExist:
        raise NotFoundError(f"Payment with transaction ID {transaction_id} not found")


def _apply_status(payment, status, event_type, payload):
    if status not in VALID_STATUSES:
        logger.warning(f"Rejected unknown status {status!r} for payment {payment.transaction_id}")
        raise BadRequestError(f"Invalid payment status: {status}")
    with transaction.atomic():
        if status != payment.status:
            logger.info(f"Payment {payment.transaction_id} status {payment.status} -> {status}")
            payment.status = status
            payment.save(update_fields=['status', 'updated_at'])
        _log(payment, event_type, status, payload)
        _advance_order(payment.order, payment)
    return payment


def verify(transaction_id):
    payment = get_payment(transaction_id)
    result = get_gateway(payment.gateway).verify(transaction_id)
    if not result.success:
        logger.warning(f"Verification of {transaction_id} failed: {result.message}")
        _log(payment, 'payment_verify_failed', payment.status, {'message': result.message})
        return payment, result
    return _apply_status(payment, result.status, 'payment_verified', result.raw), result


def handle_callback(gateway, payload):
    """
    Apply a gateway notification.

    The callback must come in on the gateway that created the payment, and
    the new status is whatever that gateway reports, never the payload's.
    """
    adapter = get_gateway(gateway)
    transaction_id = payload.get('transaction_id')
    if not transaction_id:
        raise BadRequestError('Invalid callback: missing transaction ID')

    payment = get_payment(transaction_id)
    if payment.gateway != adapter.name:
        logger.warning(f"{adapter.name} callback for {payment.gateway} payment {transaction_id} rejected")
        raise BadRequestError(f"Payment {transaction_id} was not created by the {adapter.name} gateway")

    result = adapter.handle_callback(payload)
    if not result.success:
        _log(payment, 'callback_rejected', payment.status, {'message': result.message})
        raise BadRequestError(result.message or 'Callback could not be verified')
    if result.status == 'failed':
        logger.warning(f"Payment failed for order {payment.order_id}")
    return _apply_status(payment, result.status, 'callback_received', dict(payload))


def list_order_payments(order_id):
    return Payment.objects.filter(order_id=order_id).prefetch_related('logs')
