"""
Test suite for the Inventory module
Tests: adjustments, transfers, reservations, fulfillment, best-location selection and API permissions
"""
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from marketplace.core.cache_utils import make_cache_key
from marketplace.core.exceptions import BadRequestError, NotFoundError
from marketplace.core.models import AuditLog
from marketplace.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from marketplace.inventory import services
from marketplace.inventory.models import VariantInventory, InventoryMovement


class InventoryAdjustTests(TestCase):
    """Test stock adjustments and the movement ledger"""

    def setUp(self):
        self.variant = TestDataFactory.create_variant()
        self.location = TestDataFactory.create_location()

    def test_adjust_creates_record_on_first_receipt(self):
        record = services.adjust(self.variant.pk, self.location.pk, 25, 'purchase')
        self.assertEqual(record.quantity, 25)
        self.assertEqual(record.reserved, 0)
        movement = InventoryMovement.objects.get(variant=self.variant)
        self.assertEqual(movement.delta, 25)
        self.assertEqual(movement.reason, 'purchase')

    def test_adjust_decrease_without_record_rejected(self):
        with self.assertRaises(BadRequestError) as ctx:
            services.adjust(self.variant.pk, self.location.pk, -1)
        self.assertEqual(ctx.exception.message, 'Cannot decrease inventory that does not exist')
        self.assertFalse(InventoryMovement.objects.exists())

    def test_adjust_cannot_go_negative(self):
        TestDataFactory.create_inventory(self.variant, self.location, quantity=5)
        with self.assertRaises(BadRequestError) as ctx:
            services.adjust(self.variant.pk, self.location.pk, -6)
        self.assertIn('Would result in negative quantity. Current: 5, Delta: -6', ctx.exception.message)

    def test_adjust_cannot_remove_reserved_units(self):
        TestDataFactory.create_inventory(self.variant, self.location, quantity=10, reserved=8)
        with self.assertRaises(BadRequestError) as ctx:
            services.adjust(self.variant.pk, self.location.pk, -3, 'damage')
        self.assertEqual(ctx.exception.message, 'Cannot remove 3 units. Only 2 units available (8 reserved)')
        record = VariantInventory.objects.get(variant=self.variant, location=self.location)
        self.assertEqual(record.quantity, 10)

    def test_adjust_unknown_variant(self):
        with self.assertRaises(NotFoundError):
            services.adjust(999999, self.location.pk, 1)

    def test_adjust_invalidates_cached_total(self):
        services.adjust(self.variant.pk, self.location.pk, 4)
        self.assertEqual(services.get_total(self.variant.pk)['total_quantity'], 4)
        services.adjust(self.variant.pk, self.location.pk, 6)
        self.assertEqual(services.get_total(self.variant.pk)['total_quantity'], 10)

    def test_cached_total_cleared_again_after_commit(self):
        """A total cached by another reader before commit must not survive the commit"""
        TestDataFactory.create_inventory(self.variant, self.location, quantity=5)
        with self.captureOnCommitCallbacks() as callbacks:
            services.reserve(self.variant.pk, self.location.pk, 2)
            cache.set(make_cache_key('inventory_total', self.variant.pk), {'total_available': 5}, 30)
        self.assertEqual(len(callbacks), 1)
        self.assertEqual(services.get_total(self.variant.pk)['total_available'], 5)

        callbacks[0]()
        self.assertEqual(services.get_total(self.variant.pk)['total_available'], 3)


class InventoryTransferTests(TestCase):

    def setUp(self):
        self.variant = TestDataFactory.create_variant()
        self.source = TestDataFactory.create_location(name='Source')
        self.target = TestDataFactory.create_location(name='Target')
        TestDataFactory.create_inventory(self.variant, self.source, quantity=10, reserved=2)

    def test_transfer_moves_available_units(self):
        result = services.transfer(self.variant.pk, self.source.pk, self.target.pk, 5)
        self.assertEqual(result['from'].quantity, 5)
        self.assertEqual(result['to'].quantity, 5)
        self.assertEqual(
            list(InventoryMovement.objects.filter(reason='transfer').order_by('id').values_list('delta', flat=True)),
            [-5, 5],
        )

    def test_transfer_respects_reservations(self):
        with self.assertRaises(BadRequestError) as ctx:
            services.transfer(self.variant.pk, self.source.pk, self.target.pk, 9)
        self.assertEqual(ctx.exception.message, 'Insufficient available quantity at source location')
        self.assertFalse(VariantInventory.objects.filter(location=self.target).exists())

    def test_transfer_to_same_location_rejected(self):
        with self.assertRaises(BadRequestError):
            services.transfer(self.variant.pk, self.source.pk, self.source.pk, 1)

    def test_total_unchanged_by_transfer(self):
        before = services.get_total(self.variant.pk)['total_quantity']
        services.transfer(self.variant.pk, self.source.pk, self.target.pk, 3)
        self.assertEqual(services.get_total(self.variant.pk)['total_quantity'], before)


class InventoryAllocationTests(TestCase):
    """Test reserve, release and fulfill"""

    def setUp(self):
        self.variant = TestDataFactory.create_variant()
        self.location = TestDataFactory.create_location()
        TestDataFactory.create_inventory(self.variant, self.location, quantity=10)

    def test_reserve_holds_units(self):
        record = services.reserve(self.variant.pk, self.location.pk, 4)
        self.assertEqual(record.reserved, 4)
        self.assertEqual(record.quantity, 10)
        self.assertEqual(record.available, 6)
        self.assertFalse(InventoryMovement.objects.exists())

    def test_reserve_more_than_available(self):
        services.reserve(self.variant.pk, self.location.pk, 8)
        with self.assertRaises(BadRequestError) as ctx:
            services.reserve(self.variant.pk, self.location.pk, 3)
        self.assertEqual(ctx.exception.message, 'Insufficient available quantity. Requested: 3, Available: 2')

    def test_reserve_without_record(self):
        other = TestDataFactory.create_location()
        with self.assertRaises(BadRequestError) as ctx:
            services.reserve(self.variant.pk, other.pk, 1)
        self.assertIn('No inventory found', ctx.exception.message)

    def test_release_returns_units(self):
        services.reserve(self.variant.pk, self.location.pk, 4)
        record = services.release(self.variant.pk, self.location.pk, 3)
        self.assertEqual(record.reserved, 1)

    def test_release_more_than_reserved(self):
        services.reserve(self.variant.pk, self.location.pk, 2)
        with self.assertRaises(BadRequestError) as ctx:
            services.release(self.variant.pk, self.location.pk, 3)
        self.assertEqual(ctx.exception.message, 'Cannot release 3 units. Only 2 units are reserved')

    def test_fulfill_consumes_reservation_and_records_sale(self):
        services.reserve(self.variant.pk, self.location.pk, 4)
        record = services.fulfill(self.variant.pk, self.location.pk, 4)
        self.assertEqual(record.quantity, 6)
        self.assertEqual(record.reserved, 0)
        movement = InventoryMovement.objects.get(variant=self.variant)
        self.assertEqual(movement.reason, 'sale')
        self.assertEqual(movement.delta, -4)

    def test_fulfill_requires_reservation(self):
        with self.assertRaises(BadRequestError):
            services.fulfill(self.variant.pk, self.location.pk, 1)

    def test_check_availability(self):
        services.reserve(self.variant.pk, self.location.pk, 7)
        self.assertTrue(services.check_availability(self.variant.pk, 3))
        self.assertFalse(services.check_availability(self.variant.pk, 4))
        self.assertTrue(services.check_availability(self.variant.pk, 3, location_id=self.location.pk))
        self.assertFalse(services.can_reserve(self.variant.pk, TestDataFactory.create_location().pk, 1))


class BestLocationTests(TestCase):

    def setUp(self):
        self.variant = TestDataFactory.create_variant()

    def test_picks_location_with_most_available(self):
        small = TestDataFactory.create_location()
        large = TestDataFactory.create_location()
        TestDataFactory.create_inventory(self.variant, small, quantity=5)
        TestDataFactory.create_inventory(self.variant, large, quantity=20, reserved=5)
        self.assertEqual(services.find_best_location(self.variant.pk, 3), large.pk)

    def test_none_when_no_single_location_covers(self):
        for _ in range(2):
            TestDataFactory.create_inventory(self.variant, TestDataFactory.create_location(), quantity=3)
        self.assertIsNone(services.find_best_location(self.variant.pk, 5))

    def test_tie_goes_to_first_record(self):
        first = TestDataFactory.create_location()
        second = TestDataFactory.create_location()
        TestDataFactory.create_inventory(self.variant, first, quantity=8)
        TestDataFactory.create_inventory(self.variant, second, quantity=8)
        self.assertEqual(services.find_best_location(self.variant.pk, 1), first.pk)

    def test_low_stock(self):
        location = TestDataFactory.create_location()
        TestDataFactory.create_inventory(self.variant, location, quantity=12, reserved=4)
        plenty = TestDataFactory.create_variant()
        TestDataFactory.create_inventory(plenty, location, quantity=50)
        self.assertEqual([r.variant_id for r in services.get_low_stock(10)], [self.variant.pk])


class InventoryAPITests(TestCase):
    """Test inventory endpoints and their permissions"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user()
        self.variant = TestDataFactory.create_variant()
        self.location = TestDataFactory.create_location()
        TestDataFactory.create_inventory(self.variant, self.location, quantity=10)

    def test_total_is_public(self):
        response = self.client.get(f'/api/v1/inventory/variants/{self.variant.pk}/total/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_available'], 10)

    def test_availability_is_public(self):
        response = self.client.get(f'/api/v1/inventory/variants/{self.variant.pk}/availability/?quantity=11')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['available'])

    def test_adjust_requires_permission(self):
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/v1/inventory/adjust/', {
            'variant_id': self.variant.pk, 'location_id': self.location.pk, 'delta': 5, 'reason': 'purchase',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_adjust_with_permission_writes_audit_log(self):
        TestDataFactory.grant_permissions(self.user, 'inventory:adjust')
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/v1/inventory/adjust/', {
            'variant_id': self.variant.pk, 'location_id': self.location.pk, 'delta': 5, 'reason': 'purchase',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['quantity'], 15)
        self.assertTrue(AuditLog.objects.filter(action='stock_adjust').exists())

    def test_adjust_error_message(self):
        TestDataFactory.grant_permissions(self.user, 'inventory:adjust')
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/v1/inventory/adjust/', {
            'variant_id': self.variant.pk, 'location_id': self.location.pk, 'delta': -11, 'reason': 'loss',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('negative quantity', response.data['error'])

    def test_reserve_endpoint(self):
        TestDataFactory.grant_permissions(self.user, 'inventory:update')
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/v1/inventory/reserve/', {
            'variant_id': self.variant.pk, 'location_id': self.location.pk, 'quantity': 3,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['reserved'], 3)
        self.assertEqual(response.data['available'], 7)

    def test_transfer_endpoint(self):
        TestDataFactory.grant_permissions(self.user, 'inventory:transfer')
        self.client.authenticate_user(self.user)
        target = TestDataFactory.create_location()
        response = self.client.post('/api/v1/inventory/transfer/', {
            'variant_id': self.variant.pk, 'from_location_id': self.location.pk,
            'to_location_id': target.pk, 'quantity': 4,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['to']['quantity'], 4)

    def test_movements_filtered_by_variant(self):
        services.adjust(self.variant.pk, self.location.pk, 2)
        TestDataFactory.grant_permissions(self.user, 'inventory:view')
        self.client.authenticate_user(self.user)
        response = self.client.get(f'/api/v1/inventory/movements/?variant_id={self.variant.pk}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['meta']['total_items'], 1)
