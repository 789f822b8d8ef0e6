"""
Attribute definitions and organization attribute values (EAV).

Definitions are scoped to organization types. Values are validated against
their definition, stored as JSON text plus a typed column, and multiselect
values additionally as ordered array items.
"""
import logging

from django.db import transaction

from marketplace.core.cache_utils import cached_query, ATTRIBUTE_SCHEMA_CACHE_TTL
from marketplace.core.exceptions import BadRequestError, ConflictError, NotFoundError
from .mappers import prepare_value_data, extract_value
from .models import (
    AttributeDefinition, AttributeOption, AttributeApplicableType,
    OrganizationAttribute, AttributeArrayItem,
)
from .validators import validate_attributes

logger = logging.getLogger(__name__)


@transaction.atomic
def create_definition(data):
    """Create a definition with its options and applicable organization types"""
    data = dict(data)
    options = data.pop('options', None) or []
    organization_types = data.pop('organization_types', None) or []

    if AttributeDefinition.objects.filter(key=data['key']).exists():
        raise ConflictError(f"Attribute definition with key '{data['key']}' already exists")

    if data.get('data_type') in ('select', 'multiselect') and not options:
        raise BadRequestError(f"Options are required for {data['data_type']} attributes")

    definition = AttributeDefinition.objects.create(**data)
    AttributeOption.objects.bulk_create([
        AttributeOption(definition=definition, value=opt['value'], label=opt['label'], position=index)
        for index, opt in enumerate(options)
    ])
    AttributeApplicableType.objects.bulk_create([
        AttributeApplicableType(definition=definition, organization_type=code)
        for code in dict.fromkeys(organization_types)
    ])

    for code in organization_types:
        generate_form_schema.invalidate(code)

    logger.info(f"Attribute definition '{definition.key}' ({definition.data_type}) created for types {organization_types}")
    return definition


def list_definitions(organization_type):
    """Active definitions applicable to an organization type, with active options"""
    return list(
        AttributeDefinition.objects.filter(
            is_active=True,
            applicable_types__organization_type=organization_type,
        )
        .prefetch_related('options')
        .order_by('group', 'display_order', 'key')
        .distinct()
    )


def _organization_type_code(organization):
    return organization.organization_type_id


def set_attributes(organization_id, attributes):
    """
    Validate and upsert attribute values for an organization.

    Keys without a definition for the organization's type are ignored.
    Returns the organization's full attribute dict.
    """
    from marketplace.organizations.models import Organization

    try:
        organization = Organization.objects.get(pk=organization_id)
    except Organization.DoesNotExist:
        raise NotFoundError('Organization not found')

    definitions = list_definitions(_organization_type_code(organization))
    errors = validate_attributes(definitions, attributes)
    if errors:
        raise BadRequestError('; '.join(errors))

    by_key = {definition.key: definition for definition in definitions}
    with transaction.atomic():
        for key, value in attributes.items():
            definition = by_key.get(key)
            if definition is None:
                logger.debug(f"Ignoring attribute '{key}' with no definition for organization {organization_id}")
                continue
            if value is None:
                continue
            _upsert_attribute(organization, definition, value)

    return get_attributes(organization_id)


def _upsert_attribute(organization, definition, value):
    data = prepare_value_data(definition.data_type, value)
    attribute, _ = OrganizationAttribute.objects.update_or_create(
        organization=organization,
        key=definition.key,
        defaults=data,
    )

    if definition.data_type == 'multiselect' and isinstance(value, list):
        attribute.array_items.all().delete()
        AttributeArrayItem.objects.bulk_create([
            AttributeArrayItem(attribute=attribute, value=str(v), position=index)
            for index, v in enumerate(value)
        ])
    return attribute


def get_attributes(organization_id):
    attributes = OrganizationAttribute.objects.filter(
        organization_id=organization_id
    ).prefetch_related('array_items').order_by('key')
    return {attribute.key: extract_value(attribute) for attribute in attributes}


def delete_attribute(organization_id, key):
    deleted, _ = OrganizationAttribute.objects.filter(organization_id=organization_id, key=key).delete()
    if not deleted:
        raise NotFoundError(f"Attribute '{key}' not found for organization {organization_id}")


def _definition_schema(definition):
    options = [option for option in definition.options.all() if option.is_active]
    schema = {
        'title': definition.label,
        'description': definition.description,
    }
    if definition.group:
        schema['group'] = definition.group
    if definition.help_text:
        schema['helpText'] = definition.help_text

    data_type = definition.data_type
    if data_type == 'string':
        schema['type'] = 'string'
        if definition.min_length:
            schema['minLength'] = definition.min_length
        if definition.max_length:
            schema['maxLength'] = definition.max_length
        if definition.pattern:
            schema['pattern'] = definition.pattern
        if definition.placeholder:
            schema['placeholder'] = definition.placeholder
    elif data_type == 'number':
        schema['type'] = 'number'
        if definition.min_value is not None:
            schema['minimum'] = definition.min_value
        if definition.max_value is not None:
            schema['maximum'] = definition.max_value
    elif data_type == 'boolean':
        schema['type'] = 'boolean'
    elif data_type == 'select':
        schema['type'] = 'string'
        schema['enum'] = [option.value for option in options]
        schema['enumNames'] = [option.label for option in options]
    elif data_type == 'multiselect':
        schema['type'] = 'array'
        schema['items'] = {
            'type': 'string',
            'enum': [option.value for option in options],
        }
        schema['uniqueItems'] = True
    elif data_type == 'date':
        schema['type'] = 'string'
        schema['format'] = 'date'
    return schema


@cached_query(cache_ttl=ATTRIBUTE_SCHEMA_CACHE_TTL, key_prefix="attribute_schema")
def generate_form_schema(organization_type):
    """JSON Schema describing the attribute form for an organization type"""
    definitions = list_definitions(organization_type)
    return {
        'type': 'object',
        'required': [definition.key for definition in definitions if definition.is_required],
        'properties': {definition.key: _definition_schema(definition) for definition in definitions},
    }
