"""
Test suite for organization attributes (definitions, validation, typed storage, form schema)
"""
from django.test import TestCase
from rest_framework import status
from marketplace.attributes import services
from marketplace.attributes.models import OrganizationAttribute
from marketplace.core.exceptions import BadRequestError, ConflictError, NotFoundError
from marketplace.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class AttributeServiceTests(TestCase):

    def setUp(self):
        self.org_type = TestDataFactory.create_organization_type(code='restaurant')
        self.organization = TestDataFactory.create_organization(organization_type=self.org_type)
        services.create_definition({
            'key': 'seating_capacity', 'label': 'Seating capacity', 'data_type': 'number',
            'is_required': True, 'min_value': 1, 'max_value': 500, 'organization_types': ['restaurant'],
        })
        services.create_definition({
            'key': 'cuisines', 'label': 'Cuisines', 'data_type': 'multiselect',
            'options': [{'value': 'thai', 'label': 'Thai'}, {'value': 'italian', 'label': 'Italian'}],
            'organization_types': ['restaurant'],
        })
        services.create_definition({
            'key': 'delivery', 'label': 'Offers delivery', 'data_type': 'boolean',
            'organization_types': ['restaurant'],
        })

    def test_duplicate_key(self):
        with self.assertRaises(ConflictError):
            services.create_definition({'key': 'delivery', 'label': 'Again', 'data_type': 'boolean',
                                        'organization_types': ['restaurant']})

    def test_select_requires_options(self):
        with self.assertRaises(BadRequestError):
            services.create_definition({'key': 'tier', 'label': 'Tier', 'data_type': 'select',
                                        'organization_types': ['restaurant']})

    def test_set_and_get_typed_values(self):
        attributes = services.set_attributes(self.organization.pk, {
            'seating_capacity': 40, 'cuisines': ['thai', 'italian'], 'delivery': True, 'unknown': 'ignored',
        })
        self.assertEqual(attributes, {'cuisines': ['thai', 'italian'], 'delivery': True, 'seating_capacity': 40})
        stored = OrganizationAttribute.objects.get(organization=self.organization, key='seating_capacity')
        self.assertEqual(stored.value_type, 'number')
        self.assertEqual(stored.value_number, 40.0)

    def test_required_missing(self):
        with self.assertRaises(BadRequestError) as ctx:
            services.set_attributes(self.organization.pk, {'delivery': False})
        self.assertEqual(ctx.exception.message, 'Seating capacity is required')

    def test_range_and_option_errors(self):
        with self.assertRaises(BadRequestError) as ctx:
            services.set_attributes(self.organization.pk, {'seating_capacity': 900, 'cuisines': ['sushi']})
        self.assertIn('Seating capacity must be at most 500', ctx.exception.message)
        self.assertIn('Cuisines has invalid value: sushi', ctx.exception.message)

    def test_update_replaces_value(self):
        services.set_attributes(self.organization.pk, {'seating_capacity': 40, 'cuisines': ['thai']})
        attributes = services.set_attributes(self.organization.pk, {'seating_capacity': 60, 'cuisines': ['italian']})
        self.assertEqual(attributes['seating_capacity'], 60)
        self.assertEqual(attributes['cuisines'], ['italian'])

    def test_delete_attribute(self):
        services.set_attributes(self.organization.pk, {'seating_capacity': 40})
        services.delete_attribute(self.organization.pk, 'seating_capacity')
        with self.assertRaises(NotFoundError):
            services.delete_attribute(self.organization.pk, 'seating_capacity')

    def test_form_schema(self):
        schema = services.generate_form_schema('restaurant')
        self.assertEqual(schema['required'], ['seating_capacity'])
        self.assertEqual(schema['properties']['seating_capacity']['maximum'], 500)
        self.assertEqual(schema['properties']['cuisines']['items']['enum'], ['thai', 'italian'])
        self.assertTrue(schema['properties']['cuisines']['uniqueItems'])

    def test_definitions_ordered_by_group_then_position(self):
        TestDataFactory.create_organization_type(code='salon')
        for key, group, order in [('chairs', 'facilities', 2), ('opening_hours', 'contact', 5),
                                  ('parking', 'facilities', 1), ('phone_line', 'contact', 5)]:
            services.create_definition({'key': key, 'label': key.title(), 'data_type': 'string',
                                        'group': group, 'display_order': order, 'organization_types': ['salon']})
        keys = [definition.key for definition in services.list_definitions('salon')]
        self.assertEqual(keys, ['opening_hours', 'phone_line', 'parking', 'chairs'])

    def test_new_definition_invalidates_schema(self):
        services.generate_form_schema('restaurant')
        services.create_definition({'key': 'opened_on', 'label': 'Opened on', 'data_type': 'date',
                                    'organization_types': ['restaurant']})
        schema = services.generate_form_schema('restaurant')
        self.assertEqual(schema['properties']['opened_on']['format'], 'date')


class AttributeAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.owner = TestDataFactory.create_user()
        org_type = TestDataFactory.create_organization_type(code='florist')
        self.organization = TestDataFactory.create_organization(owner=self.owner, organization_type=org_type)
        services.create_definition({'key': 'same_day', 'label': 'Same day', 'data_type': 'boolean',
                                    'organization_types': ['florist']})

    def test_definition_create_requires_permission(self):
        self.client.authenticate_user(self.owner)
        response = self.client.post('/api/v1/attributes/definitions/', {
            'key': 'x', 'label': 'X', 'data_type': 'string', 'organization_types': ['florist'],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_member_sets_attributes(self):
        self.client.authenticate_user(self.owner)
        response = self.client.put(f'/api/v1/organizations/{self.organization.pk}/attributes/',
                                   {'same_day': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {'same_day': True})

    def test_non_member_forbidden(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get(f'/api/v1/organizations/{self.organization.pk}/attributes/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
