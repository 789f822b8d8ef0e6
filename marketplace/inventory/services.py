"""
Stock levels per variant and location.

Every quantity change goes through ``adjust`` (or fulfill, which also
consumes a reservation) and is written to the movement ledger. Rows are
locked with SELECT ... FOR UPDATE inside a transaction so concurrent
reservations cannot oversell.
"""
import logging

from django.db import transaction
from django.db.models import F, Sum

from marketplace.catalog.models import ProductVariant
from marketplace.core.cache_utils import cached_query, INVENTORY_TOTAL_CACHE_TTL
from marketplace.core.exceptions import BadRequestError, NotFoundError
from marketplace.core.utils import paginate_queryset
from marketplace.locations.models import Location
from .models import VariantInventory, InventoryMovement

logger = logging.getLogger(__name__)

DEFAULT_LOW_STOCK_THRESHOLD = 10


def get_variant(variant_id):
    try:
        return ProductVariant.objects.select_related('product').get(pk=variant_id)
    except ProductVariant.DoesNotExist:
        raise NotFoundError(f"Variant with ID {variant_id} not found")


def get_location(location_id):
    try:
        return Location.objects.get(pk=location_id)
    except Location.DoesNotExist:
        raise NotFoundError(f"Location with ID {location_id} not found")


def _locked_record(variant_id, location_id):
    return (
        VariantInventory.objects.select_for_update()
        .filter(variant_id=variant_id, location_id=location_id)
        .first()
    )


def _require_record(variant_id, location_id):
    record = _locked_record(variant_id, location_id)
    if record is None:
        raise BadRequestError(f"No inventory found for variant {variant_id} at location {location_id}")
    return record


def _invalidate_total(variant_id):
    """Drop the cached total now and again once the surrounding transaction commits"""
    get_total.invalidate(variant_id)
    transaction.on_commit(lambda: get_total.invalidate(variant_id))


def record_movement(variant_id, location_id, delta, reason, order_id=None, note=None, user=None):
    return InventoryMovement.objects.create(
        variant_id=variant_id,
        location_id=location_id,
        delta=delta,
        reason=reason,
        order_id=order_id,
        note=note,
        created_by=user if user is not None and user.is_authenticated else None,
    )


@transaction.atomic
def adjust(variant_id, location_id, delta, reason='adjustment', order_id=None, note=None, user=None):
    """
    Change on-hand quantity by ``delta`` and record the movement.

    A decrease can never dip into reserved units. Returns the inventory row.
    """
    get_variant(variant_id)
    get_location(location_id)

    record = _locked_record(variant_id, location_id)
    if record is not None:
        new_quantity = record.quantity + delta
        if new_quantity < 0:
            raise BadRequestError(
                f"Cannot adjust inventory. Would result in negative quantity. "
                f"Current: {record.quantity}, Delta: {delta}"
            )
        if delta < 0 and abs(delta) > record.available:
            raise BadRequestError(
                f"Cannot remove {abs(delta)} units. Only {record.available} units available "
                f"({record.reserved} reserved)"
            )
        record.quantity = new_quantity
        record.save(update_fields=['quantity', 'updated_at'])
    else:
        if delta < 0:
            raise BadRequestError('Cannot decrease inventory that does not exist')
        record = VariantInventory.objects.create(variant_id=variant_id, location_id=location_id, quantity=delta)

    record_movement(variant_id, location_id, delta, reason, order_id=order_id, note=note, user=user)
    _invalidate_total(variant_id)

    logger.info(f"Inventory adjusted: variant {variant_id} @ location {location_id} {delta:+d} ({reason}), "
                f"now {record.quantity}")
    return record


def transfer(variant_id, from_location_id, to_location_id, quantity, note=None, user=None):
    """Move available units between locations; both legs commit together"""
    if from_location_id == to_location_id:
        raise BadRequestError('Cannot transfer to the same location')
    if quantity <= 0:
        raise BadRequestError('Transfer quantity must be positive')

    with transaction.atomic():
        source = _locked_record(variant_id, from_location_id)
        if source is None or source.available < quantity:
            raise BadRequestError('Insufficient available quantity at source location')

        note = note or f"Transfer from location {from_location_id} to {to_location_id}"
        from_record = adjust(variant_id, from_location_id, -quantity, 'transfer', note=note, user=user)
        to_record = adjust(variant_id, to_location_id, quantity, 'transfer', note=note, user=user)

    return {'from': from_record, 'to': to_record}


@transaction.atomic
def reserve(variant_id, location_id, quantity):
    """Hold units for an order without changing on-hand quantity"""
    record = _require_record(variant_id, location_id)
    if record.available < quantity:
        raise BadRequestError(
            f"Insufficient available quantity. Requested: {quantity}, Available: {record.available}"
        )
    record.reserved += quantity
    record.save(update_fields=['reserved', 'updated_at'])
    _invalidate_total(variant_id)
    logger.debug(f"Reserved {quantity} of variant {variant_id} at location {location_id}")
    return record


@transaction.atomic
def release(variant_id, location_id, quantity):
    record = _require_record(variant_id, location_id)
    if record.reserved < quantity:
        raise BadRequestError(f"Cannot release {quantity} units. Only {record.reserved} units are reserved")
    record.reserved -= quantity
    record.save(update_fields=['reserved', 'updated_at'])
    _invalidate_total(variant_id)
    logger.debug(f"Released {quantity} of variant {variant_id} at location {location_id}")
    return record


@transaction.atomic
def fulfill(variant_id, location_id, quantity, order_id=None, user=None):
    """Ship reserved units: both quantity and reserved drop, recorded as a sale"""
    record = _require_record(variant_id, location_id)
    if record.reserved < quantity:
        raise BadRequestError(f"Cannot fulfill {quantity} units. Only {record.reserved} units are reserved")
    record.reserved -= quantity
    record.quantity -= quantity
    record.save(update_fields=['reserved', 'quantity', 'updated_at'])

    record_movement(variant_id, location_id, -quantity, 'sale', order_id=order_id, user=user)
    _invalidate_total(variant_id)
    logger.info(f"Fulfilled {quantity} of variant {variant_id} at location {location_id} (order {order_id})")
    return record


# Queries

def can_reserve(variant_id, location_id, quantity):
    record = VariantInventory.objects.filter(variant_id=variant_id, location_id=location_id).first()
    if record is None:
        return False
    return record.available >= quantity


def check_availability(variant_id, quantity, location_id=None):
    """Availability at one location, or across all locations when none is given"""
    if location_id is not None:
        return can_reserve(variant_id, location_id, quantity)
    return get_total(variant_id)['total_available'] >= quantity


def find_best_location(variant_id, quantity):
    """Location id with the most available units that can cover ``quantity``, or None"""
    best_location = None
    max_available = 0
    for record in VariantInventory.objects.filter(variant_id=variant_id).order_by('id'):
        available = record.available
        if available >= quantity and available > max_available:
            max_available = available
            best_location = record.location_id
    return best_location


def get_variant_inventory(variant_id):
    return list(
        VariantInventory.objects.filter(variant_id=variant_id)
        .select_related('location')
        .order_by('location__name')
    )


@cached_query(cache_ttl=INVENTORY_TOTAL_CACHE_TTL, key_prefix="inventory_total")
def get_total(variant_id):
    totals = VariantInventory.objects.filter(variant_id=variant_id).aggregate(
        total_quantity=Sum('quantity'),
        total_reserved=Sum('reserved'),
    )
    total_quantity = totals['total_quantity'] or 0
    total_reserved = totals['total_reserved'] or 0
    return {
        'variant_id': variant_id,
        'total_quantity': total_quantity,
        'total_reserved': total_reserved,
        'total_available': total_quantity - total_reserved,
        'locations': VariantInventory.objects.filter(variant_id=variant_id).count(),
    }


def get_low_stock(threshold=DEFAULT_LOW_STOCK_THRESHOLD):
    return (
        VariantInventory.objects.annotate(available_units=F('quantity') - F('reserved'))
        .filter(available_units__lte=threshold)
        .select_related('variant__product', 'location')
        .order_by('available_units', 'id')
    )


def list_inventory(variant_id=None, location_id=None, page=1, limit=10, serializer_class=None):
    records = VariantInventory.objects.select_related('variant__product', 'location').order_by('id')
    if variant_id:
        records = records.filter(variant_id=variant_id)
    if location_id:
        records = records.filter(location_id=location_id)
    return paginate_queryset(records, page, limit, serializer_class=serializer_class)


def list_movements(variant_id=None, location_id=None, order_id=None, reason=None, page=1, limit=20,
                   serializer_class=None):
    movements = InventoryMovement.objects.select_related('variant', 'location', 'created_by')
    if variant_id:
        movements = movements.filter(variant_id=variant_id)
    if location_id:
        movements = movements.filter(location_id=location_id)
    if order_id:
        movements = movements.filter(order_id=order_id)
    if reason:
        movements = movements.filter(reason=reason)
    return paginate_queryset(movements.order_by('-created_at', '-id'), page, limit, serializer_class=serializer_class)


def location_with_inventory(location_id):
    location = get_location(location_id)
    records = list(
        location.inventory_records.select_related('variant__product').order_by('variant__sku')
    )
    return location, records
