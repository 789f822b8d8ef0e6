"""
Product images and product options.

A product has at most one main image; images are listed main first,
then by position. Options (Size, Color) hold ordered values. Variants
describe their choice in ``ProductVariant.attributes`` keyed by option
name, so an option or value still named there cannot be deleted.
"""
import logging

from django.db import transaction

from marketplace.core.exceptions import BadRequestError, NotFoundError
from .models import Product, ProductImage, ProductOption, OptionValue

logger = logging.getLogger(__name__)


def get_product(product_id):
    try:
        return Product.available.get(pk=product_id)
    except Product.DoesNotExist:
        raise NotFoundError(f"Product with ID {product_id} not found")


def _reorder(queryset, ids, owner_label):
    """Give ``ids`` positions 1..n in the given order; every id must belong to the queryset"""
    if len(set(ids)) != len(ids):
        raise BadRequestError('Duplicate IDs in reorder request')
    rows = {row.pk: row for row in queryset.filter(pk__in=ids)}
    if len(rows) != len(ids):
        raise BadRequestError(f"Some IDs do not belong to this {owner_label}")
    for position, pk in enumerate(ids, start=1):
        row = rows[pk]
        row.position = position
        row.save(update_fields=['position'])


# Images

def list_images(product_id):
    return list(get_product(product_id).images.all())


def get_image(product_id, image_id):
    try:
        return ProductImage.objects.get(pk=image_id, product_id=product_id)
    except ProductImage.DoesNotExist:
        raise NotFoundError(f"Image with ID {image_id} not found for product {product_id}")


def _clear_main(product_id, exclude_id=None):
    images = ProductImage.objects.filter(product_id=product_id, is_main=True)
    if exclude_id is not None:
        images = images.exclude(pk=exclude_id)
    images.update(is_main=False)


@transaction.atomic
def add_image(product_id, image_url, alt_text='', position=None, is_main=False):
    product = get_product(product_id)
    if is_main:
        _clear_main(product.pk)
    image = ProductImage.objects.create(
        product=product,
        image_url=image_url,
        alt_text=alt_text or '',
        position=position or 1,
        is_main=is_main,
    )
    logger.info(f"Added image {image.pk} to product {product.pk}")
    return image


@transaction.atomic
def update_image(product_id, image_id, data):
    image = get_image(product_id, image_id)
    if data.get('is_main'):
        _clear_main(product_id, exclude_id=image.pk)
    for field, value in data.items():
        setattr(image, field, value)
    image.save()
    return image


def delete_image(product_id, image_id):
    get_image(product_id, image_id).delete()
    logger.info(f"Deleted image {image_id} of product {product_id}")


@transaction.atomic
def set_main_image(product_id, image_id):
    image = get_image(product_id, image_id)
    _clear_main(product_id)
    image.is_main = True
    image.save(update_fields=['is_main'])
    return image


@transaction.atomic
def reorder_images(product_id, image_ids):
    product = get_product(product_id)
    _reorder(product.images.all(), image_ids, 'product')
    return list(product.images.all())


# Options

def list_options(product_id):
    return list(get_product(product_id).options.prefetch_related('values'))


def get_option(option_id):
    try:
        return ProductOption.objects.select_related('product').prefetch_related('values').get(pk=option_id)
    except ProductOption.DoesNotExist:
        raise NotFoundError(f"Product option with ID {option_id} not found")


def _variant_choices(product, option_name):
    """Values picked for ``option_name`` by the product's variants"""
    return {
        variant.attributes.get(option_name)
        for variant in product.variants.all()
        if isinstance(variant.attributes, dict) and option_name in variant.attributes
    }


def create_option(product_id, name, position=None):
    product = get_product(product_id)
    if product.options.filter(name=name).exists():
        raise BadRequestError(f"Option '{name}' already exists for this product")
    option = ProductOption.objects.create(product=product, name=name, position=position or 1)
    logger.info(f"Created option '{name}' for product {product.pk}")
    return option


def update_option(option_id, data):
    option = get_option(option_id)
    name = data.get('name')
    if name and name != option.name:
        if option.product.options.filter(name=name).exclude(pk=option.pk).exists():
            raise BadRequestError(f"Option '{name}' already exists for this product")
        if _variant_choices(option.product, option.name):
            raise BadRequestError('Cannot rename option that is used by variants')
    for field, value in data.items():
        setattr(option, field, value)
    option.save()
    return option


def delete_option(option_id):
    option = get_option(option_id)
    if _variant_choices(option.product, option.name):
        raise BadRequestError(
            'Cannot delete option that is used by variants. Please remove variant associations first.'
        )
    option.delete()
    logger.info(f"Deleted option {option_id}")


# Option values

def get_option_value(value_id):
    try:
        return OptionValue.objects.select_related('option__product').get(pk=value_id)
    except OptionValue.DoesNotExist:
        raise NotFoundError(f"Option value with ID {value_id} not found")


def add_option_value(option_id, value, position=None):
    option = get_option(option_id)
    if option.values.filter(value=value).exists():
        raise BadRequestError(f"Value '{value}' already exists for this option")
    return OptionValue.objects.create(option=option, value=value, position=position or 1)


def update_option_value(value_id, data):
    option_value = get_option_value(value_id)
    new_value = data.get('value')
    if new_value and new_value != option_value.value:
        if option_value.option.values.filter(value=new_value).exclude(pk=option_value.pk).exists():
            raise BadRequestError(f"Value '{new_value}' already exists for this option")
    for field, value in data.items():
        setattr(option_value, field, value)
    option_value.save()
    return option_value


def delete_option_value(value_id):
    option_value = get_option_value(value_id)
    option = option_value.option
    if option_value.value in _variant_choices(option.product, option.name):
        raise BadRequestError(
            'Cannot delete option value that is used by variants. Please remove variant associations first.'
        )
    option_value.delete()


@transaction.atomic
def reorder_option_values(option_id, value_ids):
    option = get_option(option_id)
    _reorder(OptionValue.objects.filter(option=option), value_ids, 'option')
    return list(OptionValue.objects.filter(option=option))
