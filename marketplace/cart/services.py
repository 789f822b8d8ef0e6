"""
Shopping carts for signed-in users and guest sessions.

Lines snapshot the variant price when added. Stock is checked against the
total available quantity across locations; nothing is reserved until
checkout places an order.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP

from django.db import transaction

from marketplace.catalog.models import ProductVariant
from marketplace.core.exceptions import BadRequestError, NotFoundError
from marketplace.inventory.services import get_total
from .models import Cart, CartItem

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = 'USD'
DEFAULT_TAX_RATE = Decimal('0')
TWO_PLACES = Decimal('0.01')


def _round(value):
    return Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def get_or_create_cart(user=None, session_id=None):
    """Active cart of the user (preferred) or of the guest session"""
    if user is not None and user.is_authenticated:
        lookup = {'user': user}
    elif session_id:
        lookup = {'session_id': session_id, 'user__isnull': True}
    else:
        raise BadRequestError('Either a user or a session id is required')

    cart = Cart.objects.filter(status='active', **lookup).order_by('-last_activity_at').first()
    if cart is None:
        if 'user' in lookup:
            cart = Cart.objects.create(user=user)
        else:
            cart = Cart.objects.create(session_id=session_id)
        logger.debug(f"Created cart {cart.pk}")
    return cart


def _touch(cart):
    cart.save(update_fields=['last_activity_at'])


def _require_active(cart):
    if cart.status != 'active':
        raise BadRequestError('Cart is not active')


def _sellable_variant(variant_id):
    try:
        variant = ProductVariant.objects.select_related('product').get(pk=variant_id)
    except ProductVariant.DoesNotExist:
        raise NotFoundError(f"Variant with ID {variant_id} not found")
    if not variant.is_sellable:
        raise BadRequestError('Product variant is not available')
    return variant


def stock_problem(variant_id, quantity):
    """Message describing why ``quantity`` units cannot be bought, or None"""
    available = get_total(variant_id)['total_available']
    if available <= 0:
        return 'This product is currently out of stock'
    if available < quantity:
        return f"Only {available} unit{'s' if available > 1 else ''} available"
    return None


def add_item(cart, variant_id, quantity):
    _require_active(cart)
    if quantity <= 0:
        raise BadRequestError('Quantity must be at least 1')
    variant = _sellable_variant(variant_id)

    item = cart.items.filter(variant=variant).first()
    if item is not None:
        problem = stock_problem(variant.pk, item.quantity + quantity)
        if problem:
            raise BadRequestError(f"Cannot add {quantity} more. {problem}")
        item.quantity += quantity
        item.save(update_fields=['quantity', 'updated_at'])
    else:
        problem = stock_problem(variant.pk, quantity)
        if problem:
            raise BadRequestError(problem)
        item = CartItem.objects.create(
            cart=cart,
            variant=variant,
            quantity=quantity,
            unit_price=variant.price,
            currency=variant.currency,
        )

    _touch(cart)
    return item


def get_item(cart, item_id):
    try:
        return cart.items.select_related('variant').get(pk=item_id)
    except CartItem.DoesNotExist:
        raise NotFoundError('Cart item not found')


def update_item(cart, item_id, quantity):
    """Set a line's quantity; zero or less removes the line (returns None)"""
    _require_active(cart)
    item = get_item(cart, item_id)
    if quantity <= 0:
        item.delete()
        _touch(cart)
        return None

    problem = stock_problem(item.variant_id, quantity)
    if problem:
        raise BadRequestError(problem)
    item.quantity = quantity
    item.save(update_fields=['quantity', 'updated_at'])
    _touch(cart)
    return item


def remove_item(cart, item_id):
    _require_active(cart)
    get_item(cart, item_id).delete()
    _touch(cart)


def clear_cart(cart):
    _require_active(cart)
    deleted, _ = cart.items.all().delete()
    _touch(cart)
    return deleted


@transaction.atomic
def merge_guest_cart(session_id, user):
    """Move a guest session's lines into the user's cart; quantities of matching lines add up"""
    user_cart = get_or_create_cart(user=user)
    guest_cart = Cart.objects.filter(session_id=session_id, user__isnull=True, status='active').first()
    if guest_cart is None:
        return user_cart

    for guest_item in guest_cart.items.all():
        existing = user_cart.items.filter(variant_id=guest_item.variant_id).first()
        if existing is not None:
            existing.quantity += guest_item.quantity
            existing.save(update_fields=['quantity', 'updated_at'])
        else:
            CartItem.objects.create(
                cart=user_cart,
                variant_id=guest_item.variant_id,
                quantity=guest_item.quantity,
                unit_price=guest_item.unit_price,
                currency=guest_item.currency,
            )

    guest_cart.status = 'converted'
    guest_cart.save(update_fields=['status', 'last_activity_at'])
    _touch(user_cart)
    logger.info(f"Merged guest cart {guest_cart.pk} into cart {user_cart.pk} of user {user.pk}")
    return user_cart


def summarize(cart, discount=0, tax_rate=None, shipping_amount=0):
    items = list(cart.items.all())
    discount = Decimal(str(discount))
    shipping_amount = Decimal(str(shipping_amount))
    rate = DEFAULT_TAX_RATE if tax_rate is None else Decimal(str(tax_rate))

    subtotal = sum((item.unit_price * item.quantity for item in items), Decimal('0'))
    tax_amount = (subtotal - discount) * rate
    total = subtotal - discount + tax_amount + shipping_amount
    return {
        'subtotal': _round(subtotal),
        'discount_amount': _round(discount),
        'tax_amount': _round(tax_amount),
        'shipping_amount': _round(shipping_amount),
        'total': _round(total),
        'currency': items[0].currency if items else DEFAULT_CURRENCY,
        'item_count': len(items),
        'total_quantity': sum(item.quantity for item in items),
    }


def checkout(cart, user, shipping_amount=0, tax_amount=0, discount_amount=0):
    """Place an order from the cart's lines and mark the cart converted"""
    from marketplace.orders.services import create_order

    _require_active(cart)
    items = [{'variant_id': item.variant_id, 'quantity': item.quantity} for item in cart.items.all()]
    if not items:
        raise BadRequestError('Cart is empty')

    order = create_order(
        user, items,
        shipping_amount=shipping_amount,
        tax_amount=tax_amount,
        discount_amount=discount_amount,
    )
    cart.status = 'converted'
    cart.save(update_fields=['status', 'last_activity_at'])
    logger.info(f"Cart {cart.pk} checked out as order {order.external_ref}")
    return order
