"""
Refunds of delivered orders.

A request is split per vendor organization: each vendor gets its own
Refund covering its lines, and the vendor share is debited from that
vendor's available balance straight away. Rejecting or cancelling a
request credits the share back. When every line of an order has been
refunded through completed refunds the order itself becomes refunded.
"""
import logging
from collections import OrderedDict
from decimal import Decimal, ROUND_HALF_UP

from django.db import transaction
from django.db.models import Count, Q, Sum

from marketplace.core.exceptions import BadRequestError, NotFoundError
from marketplace.core.utils import paginate_queryset
from marketplace.vendors import services as balances
from .models import Refund, RefundItem, REFUND_STATUS_CHOICES, OPEN_REFUND_STATUSES
from . import services as orders

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal('0.01')
REFUNDABLE_ORDER_STATUSES = ('delivered',)


def _round(value):
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def get_refund(refund_id):
    try:
        return (
            Refund.objects.select_related('order', 'organization')
            .prefetch_related('items__order_item')
            .get(pk=refund_id)
        )
    except Refund.DoesNotExist:
        raise NotFoundError(f"Refund {refund_id} not found")


def refunded_quantity(order_item):
    """Units of a line already covered by open or completed refunds"""
    total = order_item.refund_items.filter(refund__status__in=OPEN_REFUND_STATUSES).aggregate(
        quantity=Sum('quantity'))['quantity']
    return total or 0


def _build_lines(order, items):
    """Validate requested lines and group them by vendor organization"""
    order_items = {item.pk: item for item in order.items.all()}
    grouped = OrderedDict()
    seen = set()

    for entry in items:
        order_item_id = entry.get('order_item_id')
        quantity = int(entry.get('quantity') or 0)
        if order_item_id in seen:
            raise BadRequestError(f"Order item {order_item_id} listed more than once")
        seen.add(order_item_id)

        order_item = order_items.get(order_item_id)
        if order_item is None:
            raise BadRequestError('Some items do not belong to this order')
        if quantity <= 0:
            raise BadRequestError(f"Refund quantity for item {order_item_id} must be positive")

        remaining = order_item.quantity - refunded_quantity(order_item)
        if quantity > remaining:
            raise BadRequestError(
                f"Refund quantity ({quantity}) exceeds refundable quantity ({remaining}) for item {order_item_id}"
            )

        ratio = Decimal(quantity) / Decimal(order_item.quantity)
        line_amount = _round(order_item.line_total * ratio)
        requested_amount = entry.get('amount')
        if requested_amount is not None:
            requested_amount = Decimal(str(requested_amount))
            if requested_amount <= 0 or requested_amount > line_amount:
                raise BadRequestError(
                    f"Refund amount for item {order_item_id} must be between 0.01 and {line_amount}"
                )
            line_amount = _round(requested_amount)
        organization_amount = _round(order_item.organization_amount * ratio)

        grouped.setdefault(order_item.organization_id, []).append(
            (order_item, quantity, line_amount, organization_amount)
        )
    return grouped


def create_refund(user, order_id, items, reason):
    """
    Request a refund for lines of a delivered order (one Refund per vendor).

    All vendor debits succeed or none are kept.
    """
    if not items:
        raise BadRequestError('Refund must contain at least one item')
    order = orders.get_order(order_id)
    if order.user_id != user.pk:
        raise NotFoundError(f"Order with ID {order_id} not found")
    if order.status not in REFUNDABLE_ORDER_STATUSES:
        raise BadRequestError('Order must be delivered before requesting a refund')

    grouped = _build_lines(order, items)
    refunds = []
    with transaction.atomic():
        for organization_id, lines in grouped.items():
            refund = Refund.objects.create(
                order=order,
                organization_id=organization_id,
                amount=sum((line[2] for line in lines), Decimal('0.00')),
                organization_amount=sum((line[3] for line in lines), Decimal('0.00')),
                currency=order.currency,
                reason=reason,
                requested_by=user,
            )
            for order_item, quantity, amount, _ in lines:
                RefundItem.objects.create(refund=refund, order_item=order_item, quantity=quantity, amount=amount)

            if refund.organization_amount > 0:
                try:
                    balances.debit_for_refund(
                        organization_id, refund.organization_amount, refund.pk,
                        description=f"Refund requested for Order #{order.external_ref} - {reason}",
                    )
                except BadRequestError as e:
                    logger.error(f"Failed to debit organization {organization_id} for refund {refund.pk}: "
                                 f"{e.message}")
                    raise BadRequestError('Failed to process refund: Insufficient vendor balance')
            refunds.append(refund)

    logger.info(f"Created {len(refunds)} refund(s) for order {order.external_ref}")
    return refunds


def _require_status(refund, expected, message):
    if refund.status != expected:
        raise BadRequestError(message)


def _restore_vendor_share(refund, description):
    if refund.organization_amount > 0:
        balances.credit_available(refund.organization_id, refund.organization_amount, refund.pk,
                                  description=description)


@transaction.atomic
def approve_refund(refund_id, user, note=None):
    refund = get_refund(refund_id)
    _require_status(refund, 'requested', "Refund must be in 'requested' status to approve")
    refund.status = 'approved'
    refund.processed_by = user
    refund.resolution_note = note or refund.resolution_note
    refund.save(update_fields=['status', 'processed_by', 'resolution_note', 'updated_at'])
    logger.info(f"Refund {refund.pk} approved by user {user.pk} for organization {refund.organization_id}")
    return refund


@transaction.atomic
def reject_refund(refund_id, user, reason):
    """Reject a requested refund and give the vendor share back"""
    refund = get_refund(refund_id)
    _require_status(refund, 'requested', 'Only requested refunds can be rejected')
    refund.status = 'rejected'
    refund.processed_by = user
    refund.resolution_note = reason
    refund.save(update_fields=['status', 'processed_by', 'resolution_note', 'updated_at'])
    _restore_vendor_share(refund, f"Refund rejected - Balance restored for Order #{refund.order.external_ref}")
    logger.info(f"Refund {refund.pk} rejected; restored {refund.organization_amount} "
                f"to organization {refund.organization_id}")
    return refund


def _fully_refunded(order):
    for item in order.items.all():
        completed = item.refund_items.filter(refund__status='completed').aggregate(
            quantity=Sum('quantity'))['quantity'] or 0
        if completed < item.quantity:
            return False
    return True


@transaction.atomic
def complete_refund(refund_id, user):
    """Mark an approved refund paid out; the order becomes refunded once nothing is left"""
    refund = get_refund(refund_id)
    _require_status(refund, 'approved', 'Refund must be approved before completing')
    refund.status = 'completed'
    refund.save(update_fields=['status', 'updated_at'])
    logger.info(f"Refund {refund.pk} marked as completed")

    order = orders.get_order(refund.order_id)
    if _fully_refunded(order):
        orders.mark_refunded(order, note='All items refunded', user=user)
    return refund


@transaction.atomic
def cancel_refund(refund_id, user):
    """Customer withdraws a refund request before it is handled"""
    refund = get_refund(refund_id)
    if refund.order.user_id != user.pk:
        raise BadRequestError('You can only cancel your own refunds')
    _require_status(refund, 'requested', 'Only requested refunds can be cancelled')
    refund.status = 'cancelled'
    refund.save(update_fields=['status', 'updated_at'])
    _restore_vendor_share(refund, 'Refund cancelled by customer - Balance restored')
    logger.info(f"Refund {refund.pk} cancelled by customer")
    return refund


def list_refunds(organization_id=None, order_id=None, status=None, page=1, limit=10, serializer_class=None):
    refunds = Refund.objects.select_related('order', 'organization').prefetch_related('items')
    if organization_id:
        refunds = refunds.filter(organization_id=organization_id)
    if order_id:
        refunds = refunds.filter(order_id=order_id)
    if status:
        refunds = refunds.filter(status=status)
    return paginate_queryset(refunds, page, limit, serializer_class=serializer_class)


def refund_stats(organization_id=None):
    """Counts and amounts per status; ``total_amount`` sums approved and completed refunds"""
    refunds = Refund.objects.all()
    if organization_id:
        refunds = refunds.filter(organization_id=organization_id)

    by_status = {
        row['status']: {'count': row['count'], 'amount': row['amount'] or Decimal('0.00')}
        for row in refunds.order_by().values('status').annotate(count=Count('id'), amount=Sum('amount'))
    }
    totals = refunds.aggregate(
        total=Count('id'),
        total_amount=Sum('amount', filter=Q(status__in=('approved', 'completed'))),
    )
    return {
        'total': totals['total'],
        'by_status': {value: by_status.get(value, {'count': 0, 'amount': Decimal('0.00')})
                      for value, _ in REFUND_STATUS_CHOICES},
        'total_amount': totals['total_amount'] or Decimal('0.00'),
    }
