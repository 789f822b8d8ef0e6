"""
Platform commission per order line.

The fee configuration is taken from the first level that defines one:
product, category, vendor organization, organization type default.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal('0.01')
ZERO = Decimal('0.00')


def _configured(fee_type, fee_amount):
    return bool(fee_type) and fee_amount is not None


def resolve_fee(product=None, category=None, organization=None, organization_type=None):
    """Return (fee_type, fee_rate, source) from the most specific configured level"""
    if product is not None and _configured(product.fee_type, product.fee_amount):
        return product.fee_type, product.fee_amount, 'product'
    if category is not None and _configured(category.fee_type, category.fee_amount):
        return category.fee_type, category.fee_amount, 'category'
    if organization is not None and _configured(organization.fee_type, organization.fee_amount):
        return organization.fee_type, organization.fee_amount, 'vendor'
    if organization_type is not None and _configured(organization_type.default_fee_type,
                                                     organization_type.default_fee_amount):
        return organization_type.default_fee_type, organization_type.default_fee_amount, 'organization_type'
    return None, None, 'none'


def calculate_from_config(line_total, fee_type, fee_rate):
    line_total = Decimal(line_total)
    fee_type = fee_type or 'none'
    fee_rate = Decimal(fee_rate or 0)

    if line_total <= 0:
        return {
            'line_total': line_total,
            'platform_fee_amount': ZERO,
            'organization_amount': line_total,
            'fee_type': fee_type,
            'fee_rate': ZERO,
        }

    if fee_type == 'percentage':
        fee = line_total * fee_rate / Decimal('100')
    elif fee_type == 'fixed':
        fee = fee_rate
    else:
        fee = ZERO

    fee = min(fee, line_total).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    return {
        'line_total': line_total,
        'platform_fee_amount': fee,
        'organization_amount': (line_total - fee).quantize(TWO_PLACES, rounding=ROUND_HALF_UP),
        'fee_type': fee_type,
        'fee_rate': fee_rate,
    }


def calculate_commission(line_total, product=None, category=None, organization=None, organization_type=None):
    """
    Split ``line_total`` into platform fee and vendor amount.

    Returns a dict with line_total, platform_fee_amount, organization_amount,
    fee_type, fee_rate and commission_source.
    """
    fee_type, fee_rate, source = resolve_fee(product, category, organization, organization_type)
    result = calculate_from_config(line_total, fee_type, fee_rate)
    result['commission_source'] = source
    logger.debug(f"Commission for {line_total} from {source}: fee {result['platform_fee_amount']}")
    return result
