"""Homepage content sections, cached for the storefront"""
import logging

from django.db import transaction

from marketplace.core.cache_utils import cached_query, HOMEPAGE_CACHE_TTL
from marketplace.core.exceptions import BadRequestError, NotFoundError
from .models import HomepageContent

logger = logging.getLogger(__name__)

# URL section name -> model column
SECTIONS = {
    'header': 'header',
    'hero-banner': 'hero_banner',
    'features-bar': 'features_bar',
    'our-story': 'our_story',
    'store-locations': 'store_locations',
    'footer': 'footer',
}


def _camel(column):
    first, *rest = column.split('_')
    return first + ''.join(part.capitalize() for part in rest)


def _column(section):
    column = SECTIONS.get(section)
    if column is None:
        raise BadRequestError(f"Invalid section name: {section}. Valid sections: {', '.join(SECTIONS)}")
    return column


def _serialize(content):
    data = {_camel(column): getattr(content, column) for column in SECTIONS.values()}
    data['updatedAt'] = content.updated_at.isoformat()
    return data


@cached_query(cache_ttl=HOMEPAGE_CACHE_TTL, key_prefix="homepage")
def _cached_homepage():
    content = HomepageContent.objects.order_by('id').first()
    return _serialize(content) if content else None


def get_homepage():
    data = _cached_homepage()
    if data is None:
        raise NotFoundError('Homepage not configured yet')
    return data


def get_section(section):
    column = _column(section)
    return get_homepage()[_camel(column)]


@transaction.atomic
def _save(values):
    content = HomepageContent.objects.select_for_update().order_by('id').first()
    if content is None:
        content = HomepageContent.objects.create(**values)
        logger.info(f"Homepage content created with sections {', '.join(values)}")
    else:
        for column, value in values.items():
            setattr(content, column, value)
        content.save()
    _cached_homepage.invalidate()
    return content


def update_section(section, content):
    column = _column(section)
    saved = _save({column: content})
    logger.info(f"Homepage section {section} updated")
    return _serialize(saved)


def update_homepage(data):
    """Update several sections at once; keys may be section names or camelCase"""
    by_camel = {_camel(column): column for column in SECTIONS.values()}
    values = {}
    for key, value in data.items():
        column = by_camel.get(key) or SECTIONS.get(key)
        if column is None:
            raise BadRequestError(f"Invalid section name: {key}. Valid sections: {', '.join(SECTIONS)}")
        values[column] = value
    if not values:
        raise BadRequestError('No sections provided')
    return _serialize(_save(values))
