"""
Test suite for fulfillment locations
"""
from django.test import TestCase
from rest_framework import status
from marketplace.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from marketplace.locations.models import Location


class LocationAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user()

    def test_list_is_public_and_hides_inactive(self):
        TestDataFactory.create_location(name='Main')
        TestDataFactory.create_location(name='Closed', is_active=False)
        response = self.client.get('/api/v1/inventory/locations/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([l['name'] for l in response.data], ['Main'])

    def test_create_requires_auth(self):
        response = self.client.post('/api/v1/inventory/locations/', {'name': 'North'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_create_requires_permission(self):
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/v1/inventory/locations/', {'name': 'North'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_create_normalizes_country(self):
        TestDataFactory.grant_permissions(self.user, 'inventory:create')
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/v1/inventory/locations/', {'name': 'North', 'country': 'us'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['country'], 'US')

    def test_invalid_country(self):
        TestDataFactory.grant_permissions(self.user, 'inventory:create')
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/v1/inventory/locations/', {'name': 'North', 'country': '1X'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_blocked_by_reservations(self):
        location = TestDataFactory.create_location()
        TestDataFactory.create_inventory(TestDataFactory.create_variant(), location, quantity=3, reserved=1)
        TestDataFactory.grant_permissions(self.user, 'inventory:delete')
        self.client.authenticate_user(self.user)
        response = self.client.delete(f'/api/v1/inventory/locations/{location.pk}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Location.objects.filter(pk=location.pk).exists())

    def test_delete_empty_location(self):
        location = TestDataFactory.create_location()
        TestDataFactory.grant_permissions(self.user, 'inventory:delete')
        self.client.authenticate_user(self.user)
        response = self.client.delete(f'/api/v1/inventory/locations/{location.pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_location_inventory_view(self):
        location = TestDataFactory.create_location()
        TestDataFactory.create_inventory(TestDataFactory.create_variant(), location, quantity=4)
        response = self.client.get(f'/api/v1/inventory/locations/{location.pk}/inventory/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['inventory']), 1)
