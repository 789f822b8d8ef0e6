"""Saved-for-later variants of a signed-in user"""
import logging

from django.db import transaction
from django.db.models import Prefetch

from marketplace.core.exceptions import BadRequestError, NotFoundError
from .models import ProductImage, ProductVariant, Wishlist, WishlistItem

logger = logging.getLogger(__name__)


def get_or_create_wishlist(user):
    wishlist, created = Wishlist.objects.get_or_create(user=user)
    if created:
        logger.debug(f"Created wishlist for user {user.pk}")
    return wishlist


def get_items(user):
    """Items of the user's wishlist, newest first, with each product's main image"""
    wishlist = get_or_create_wishlist(user)
    return list(
        wishlist.items.select_related('variant__product').prefetch_related(
            Prefetch('variant__product__images', queryset=ProductImage.objects.filter(is_main=True),
                     to_attr='main_images')
        )
    )


def count_items(user):
    return WishlistItem.objects.filter(wishlist__user=user).count()


def add_item(user, variant_id):
    """Idempotent: adding a saved variant again only refreshes it"""
    if not ProductVariant.objects.filter(pk=variant_id).exists():
        raise NotFoundError('Variant not found')
    wishlist = get_or_create_wishlist(user)
    item, created = WishlistItem.objects.get_or_create(wishlist=wishlist, variant_id=variant_id)
    if not created:
        item.save(update_fields=['updated_at'])
    return item


@transaction.atomic
def add_items(user, variant_ids):
    if not variant_ids:
        raise BadRequestError('At least one variant is required')
    return [add_item(user, variant_id) for variant_id in dict.fromkeys(variant_ids)]


def remove_item(user, item_id):
    deleted, _ = WishlistItem.objects.filter(pk=item_id, wishlist__user=user).delete()
    if not deleted:
        raise NotFoundError('Wishlist item not found')


def clear(user):
    deleted, _ = WishlistItem.objects.filter(wishlist__user=user).delete()
    logger.info(f"Cleared {deleted} wishlist item(s) for user {user.pk}")
    return deleted
