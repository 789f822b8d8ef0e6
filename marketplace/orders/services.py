"""
Order placement and lifecycle.

Placing an order picks a fulfillment location per line, records the
commission split, holds vendor funds as pending and reserves stock.
Shipping fulfills the reservations, delivery releases vendor funds and
cancellation undoes both.
"""
import logging
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from marketplace.catalog.models import ProductVariant
from marketplace.core.exceptions import BadRequestError, NotFoundError
from marketplace.core.utils import paginate_queryset
from marketplace.inventory import services as inventory
from marketplace.vendors import services as balances
from .commission import calculate_commission
from .models import Order, OrderItem, OrderStatusHistory, ALLOWED_TRANSITIONS

logger = logging.getLogger(__name__)

CANCELLABLE_STATUSES = ('pending', 'processing')


def _to_decimal(value):
    return Decimal(str(value or 0))


def get_order(order_id):
    try:
        return Order.objects.select_related('user').prefetch_related('items').get(pk=order_id)
    except Order.DoesNotExist:
        raise NotFoundError(f"Order with ID {order_id} not found")


def _load_variant(variant_id):
    try:
        variant = ProductVariant.objects.select_related(
            'product__category', 'product__organization__organization_type'
        ).get(pk=variant_id)
    except ProductVariant.DoesNotExist:
        raise NotFoundError(f"Variant {variant_id} not found")
    if not variant.is_sellable:
        raise NotFoundError(f"Variant {variant_id} not found")
    return variant


def _add_history(order, status, note=None, user=None):
    return OrderStatusHistory.objects.create(
        order=order,
        status=status,
        note=note,
        created_by=user if user is not None and user.is_authenticated else None,
    )


def create_order(user, items, shipping_amount=0, tax_amount=0, discount_amount=0):
    """
    Place an order for ``items`` (dicts with variant_id and quantity).

    Raises BadRequestError when stock is short at every location. If a
    reservation fails after the order is written, the order is cancelled
    and the error re-raised.
    """
    if not items:
        raise BadRequestError('Order must contain at least one item')

    lines = []
    for item in items:
        variant_id = item.get('variant_id')
        if not variant_id:
            raise BadRequestError('variant_id is required for order item')
        quantity = int(item.get('quantity') or 0)
        if quantity <= 0:
            raise BadRequestError(f"Quantity for variant {variant_id} must be positive")

        variant = _load_variant(variant_id)
        location_id = inventory.find_best_location(variant_id, quantity)
        if location_id is None:
            raise BadRequestError(f"Insufficient inventory for variant {variant_id}. Requested: {quantity}")
        lines.append((variant, quantity, location_id))

    shipping_amount = _to_decimal(shipping_amount)
    tax_amount = _to_decimal(tax_amount)
    discount_amount = _to_decimal(discount_amount)

    with transaction.atomic():
        subtotal = sum((variant.price * quantity for variant, quantity, _ in lines), Decimal('0.00'))
        order = Order.objects.create(
            user=user,
            subtotal_amount=subtotal,
            shipping_amount=shipping_amount,
            tax_amount=tax_amount,
            discount_amount=discount_amount,
            total_amount=subtotal + tax_amount + shipping_amount - discount_amount,
            currency=lines[0][0].currency,
        )
        order.external_ref = f"ORD-{timezone.now().year}-{order.pk:04d}"
        order.save(update_fields=['external_ref'])

        for variant, quantity, location_id in lines:
            product = variant.product
            organization = product.organization
            line_total = variant.price * quantity
            commission = calculate_commission(
                line_total,
                product=product,
                category=product.category,
                organization=organization,
                organization_type=organization.organization_type,
            )
            OrderItem.objects.create(
                order=order,
                organization=organization,
                variant=variant,
                location_id=location_id,
                quantity=quantity,
                unit_price=variant.price,
                line_total=commission['line_total'],
                platform_fee_amount=commission['platform_fee_amount'],
                organization_amount=commission['organization_amount'],
                fee_type=commission['fee_type'],
                fee_rate=commission['fee_rate'],
                commission_source=commission['commission_source'],
                product_name_snapshot=product.name,
                variant_sku_snapshot=variant.sku,
            )
            if commission['organization_amount'] > 0:
                balances.credit_pending(
                    organization.pk, commission['organization_amount'], order.pk,
                    description=f"Order #{order.external_ref} - Vendor commission",
                )

        _add_history(order, 'pending', 'Order placed', user=user)

    reserved = []
    try:
        for variant, quantity, location_id in lines:
            inventory.reserve(variant.pk, location_id, quantity)
            reserved.append((variant.pk, location_id, quantity))
    except BadRequestError as e:
        logger.error(f"Inventory reservation failed for order {order.pk}: {e.message}")
        for variant_id, location_id, quantity in reserved:
            inventory.release(variant_id, location_id, quantity)
        _refund_vendors(order, 'Inventory reservation failed')
        order.status = 'cancelled'
        order.cancel_reason = 'Inventory reservation failed'
        order.save(update_fields=['status', 'cancel_reason', 'updated_at'])
        _add_history(order, 'cancelled', 'Inventory reservation failed')
        raise BadRequestError(f"Failed to reserve inventory: {e.message}")

    logger.info(f"Order {order.external_ref} placed by user {user.pk}: {len(lines)} items, total {order.total_amount}")
    return get_order(order.pk)


def _fulfill_items(order, user=None):
    for item in order.items.all():
        if item.location_id is None:
            raise BadRequestError(f"No reserved inventory found for variant {item.variant_sku_snapshot}")
        try:
            inventory.fulfill(item.variant_id, item.location_id, item.quantity, order_id=order.pk, user=user)
        except BadRequestError as e:
            raise BadRequestError(f"Failed to fulfill inventory for variant {item.variant_sku_snapshot}: {e.message}")


def _release_vendor_funds(order):
    for item in order.items.all():
        if item.organization_amount <= 0:
            continue
        try:
            balances.release_pending(
                item.organization_id, item.organization_amount, order.pk,
                description=f"Order #{order.external_ref} delivered - Funds released",
            )
        except BadRequestError as e:
            logger.error(f"Failed to release funds for organization {item.organization_id} "
                         f"on order {order.pk}: {e.message}")


def _refund_vendors(order, reason):
    for item in order.items.all():
        if item.organization_amount <= 0:
            continue
        try:
            balances.refund(
                item.organization_id, item.organization_amount, order.pk,
                description=f"Order #{order.external_ref} cancelled - {reason}",
            )
        except BadRequestError as e:
            logger.error(f"Failed to refund funds for organization {item.organization_id} "
                         f"on order {order.pk}: {e.message}")


def update_status(order_id, status, note=None, user=None):
    """Move an order to ``status``, applying the stock and balance side effects"""
    order = get_order(order_id)
    if order.is_terminal:
        raise BadRequestError(f"Cannot change status of a {order.status} order")
    if status == 'refunded':
        raise BadRequestError('Orders are marked refunded by completing their refunds')
    if status not in ALLOWED_TRANSITIONS[order.status]:
        raise BadRequestError(f"Cannot change order status from {order.status} to {status}")
    if status == 'cancelled':
        return cancel(order_id, note or 'Cancelled', user=user)

    with transaction.atomic():
        if status == 'shipped':
            _fulfill_items(order, user=user)
        if status == 'delivered':
            logger.info(f"Order {order.pk} delivered - releasing vendor funds")
            _release_vendor_funds(order)

        previous = order.status
        order.status = status
        order.save(update_fields=['status', 'updated_at'])
        _add_history(order, status, note, user=user)

    logger.info(f"Order {order.external_ref} status {previous} -> {status}")
    return order


def mark_refunded(order, note=None, user=None):
    """Final step of a completed full refund"""
    if 'refunded' not in ALLOWED_TRANSITIONS[order.status]:
        raise BadRequestError(f"Cannot change order status from {order.status} to refunded")
    order.status = 'refunded'
    order.save(update_fields=['status', 'updated_at'])
    _add_history(order, 'refunded', note, user=user)
    logger.info(f"Order {order.external_ref} refunded")
    return order


def cancel(order_id, reason, user=None):
    """Cancel a pending or processing order: release each line's reservation and refund vendors"""
    order = get_order(order_id)
    if order.status not in CANCELLABLE_STATUSES:
        raise BadRequestError('Only pending or processing orders can be cancelled')

    for item in order.items.all():
        if item.location_id is None:
            logger.error(f"No reservation to release for variant {item.variant_sku_snapshot} on order {order.pk}")
            continue
        try:
            inventory.release(item.variant_id, item.location_id, item.quantity)
        except BadRequestError as e:
            logger.error(f"Failed to release inventory for variant {item.variant_sku_snapshot}: {e.message}")

    logger.info(f"Order {order.pk} cancelled - refunding vendor funds")
    _refund_vendors(order, reason)

    order.status = 'cancelled'
    order.cancel_reason = reason
    order.save(update_fields=['status', 'cancel_reason', 'updated_at'])
    _add_history(order, 'cancelled', reason, user=user)
    return order


def list_orders(user, status=None, page=1, limit=10, serializer_class=None, include_all=False):
    """Orders of ``user``, or every order when ``include_all`` is set (staff)"""
    orders = Order.objects.select_related('user').prefetch_related('items')
    if not include_all:
        orders = orders.filter(user=user)
    if status:
        orders = orders.filter(status=status)
    return paginate_queryset(orders, page, limit, serializer_class=serializer_class)
