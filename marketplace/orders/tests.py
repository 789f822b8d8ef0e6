"""
Test suite for Orders
Tests: commission resolution, order placement, status lifecycle and the order API
"""
from decimal import Decimal
from unittest.mock import patch

from django.test import TestCase
from rest_framework import status
from marketplace.core.exceptions import BadRequestError, NotFoundError
from marketplace.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from marketplace.inventory.models import VariantInventory, InventoryMovement
from marketplace.orders import refunds, services
from marketplace.orders.commission import calculate_commission, calculate_from_config
from marketplace.orders.models import Order, Refund
from marketplace.vendors import services as balances
from marketplace.vendors.models import VendorBalance


class CommissionTests(TestCase):
    """Test fee resolution order and rounding"""

    def setUp(self):
        self.org_type = TestDataFactory.create_organization_type(
            default_fee_type='percentage', default_fee_amount=Decimal('5.00'))
        self.organization = TestDataFactory.create_organization(organization_type=self.org_type)
        self.category = TestDataFactory.create_category()
        self.product = TestDataFactory.create_product(organization=self.organization, category=self.category)

    def _commission(self, line_total):
        return calculate_commission(
            Decimal(line_total),
            product=self.product,
            category=self.category,
            organization=self.organization,
            organization_type=self.org_type,
        )

    def test_falls_back_to_organization_type_default(self):
        result = self._commission('200.00')
        self.assertEqual(result['commission_source'], 'organization_type')
        self.assertEqual(result['platform_fee_amount'], Decimal('10.00'))
        self.assertEqual(result['organization_amount'], Decimal('190.00'))

    def test_product_fee_wins(self):
        self.product.fee_type = 'fixed'
        self.product.fee_amount = Decimal('3.00')
        self.category.fee_type = 'percentage'
        self.category.fee_amount = Decimal('20.00')
        result = self._commission('50.00')
        self.assertEqual(result['commission_source'], 'product')
        self.assertEqual(result['platform_fee_amount'], Decimal('3.00'))

    def test_category_before_vendor(self):
        self.category.fee_type = 'percentage'
        self.category.fee_amount = Decimal('10.00')
        self.organization.fee_type = 'percentage'
        self.organization.fee_amount = Decimal('1.00')
        result = self._commission('100.00')
        self.assertEqual(result['commission_source'], 'category')
        self.assertEqual(result['platform_fee_amount'], Decimal('10.00'))

    def test_type_without_amount_is_skipped(self):
        self.category.fee_type = 'percentage'
        self.category.fee_amount = None
        self.organization.fee_type = 'fixed'
        self.organization.fee_amount = Decimal('2.50')
        self.assertEqual(self._commission('10.00')['commission_source'], 'vendor')

    def test_fixed_fee_capped_at_line_total(self):
        result = calculate_from_config(Decimal('4.00'), 'fixed', Decimal('10.00'))
        self.assertEqual(result['platform_fee_amount'], Decimal('4.00'))
        self.assertEqual(result['organization_amount'], Decimal('0.00'))

    def test_percentage_rounds_half_up(self):
        result = calculate_from_config(Decimal('0.50'), 'percentage', Decimal('5'))
        self.assertEqual(result['platform_fee_amount'], Decimal('0.03'))
        self.assertEqual(result['organization_amount'], Decimal('0.47'))

    def test_no_configuration(self):
        result = calculate_commission(Decimal('80.00'))
        self.assertEqual(result['commission_source'], 'none')
        self.assertEqual(result['platform_fee_amount'], Decimal('0.00'))
        self.assertEqual(result['organization_amount'], Decimal('80.00'))

    def test_zero_line_total(self):
        result = calculate_from_config(Decimal('0'), 'percentage', Decimal('10'))
        self.assertEqual(result['platform_fee_amount'], Decimal('0.00'))


class OrderLifecycleTests(TestCase):
    """Test placement, shipping, delivery and cancellation side effects"""

    def setUp(self):
        self.customer = TestDataFactory.create_user()
        self.organization = TestDataFactory.create_organization(fee_type='percentage', fee_amount=Decimal('10.00'))
        product = TestDataFactory.create_product(organization=self.organization)
        self.variant = TestDataFactory.create_variant(product=product, price=Decimal('25.00'))
        self.location = TestDataFactory.create_location()
        TestDataFactory.create_inventory(self.variant, self.location, quantity=10)

    def _place(self, quantity=2, **amounts):
        return services.create_order(self.customer, [{'variant_id': self.variant.pk, 'quantity': quantity}], **amounts)

    def _record(self):
        return VariantInventory.objects.get(variant=self.variant, location=self.location)

    def test_create_order_reserves_and_holds_funds(self):
        order = self._place(quantity=2, shipping_amount=Decimal('5.00'), tax_amount=Decimal('4.00'))
        self.assertEqual(order.status, 'pending')
        self.assertTrue(order.external_ref.startswith('ORD-'))
        self.assertEqual(order.subtotal_amount, Decimal('50.00'))
        self.assertEqual(order.total_amount, Decimal('59.00'))

        item = order.items.get()
        self.assertEqual(item.platform_fee_amount, Decimal('5.00'))
        self.assertEqual(item.organization_amount, Decimal('45.00'))
        self.assertEqual(item.commission_source, 'vendor')
        self.assertEqual(item.location_id, self.location.pk)

        self.assertEqual(self._record().reserved, 2)
        balance = VendorBalance.objects.get(organization=self.organization)
        self.assertEqual(balance.pending_balance, Decimal('45.00'))
        self.assertEqual(balance.available_balance, Decimal('0.00'))
        self.assertEqual(order.status_history.count(), 1)

    def test_create_order_insufficient_stock(self):
        with self.assertRaises(BadRequestError) as ctx:
            self._place(quantity=11)
        self.assertIn('Insufficient inventory for variant', ctx.exception.message)
        self.assertFalse(Order.objects.exists())

    def test_create_order_inactive_variant(self):
        self.variant.is_active = False
        self.variant.save()
        with self.assertRaises(NotFoundError):
            self._place()

    def test_reservation_failure_cancels_order(self):
        with patch('marketplace.orders.services.inventory.reserve',
                   side_effect=BadRequestError('Insufficient available quantity. Requested: 2, Available: 0')):
            with self.assertRaises(BadRequestError) as ctx:
                self._place()
        self.assertTrue(ctx.exception.message.startswith('Failed to reserve inventory'))
        order = Order.objects.get()
        self.assertEqual(order.status, 'cancelled')
        balance = VendorBalance.objects.get(organization=self.organization)
        self.assertEqual(balance.pending_balance, Decimal('0.00'))

    def test_ship_fulfills_reservation(self):
        order = self._place(quantity=3)
        services.update_status(order.pk, 'processing')
        services.update_status(order.pk, 'shipped')
        record = self._record()
        self.assertEqual(record.quantity, 7)
        self.assertEqual(record.reserved, 0)
        movement = InventoryMovement.objects.get(order=order)
        self.assertEqual(movement.reason, 'sale')
        self.assertEqual(movement.delta, -3)

    def test_delivery_releases_vendor_funds(self):
        order = self._place(quantity=2)
        services.update_status(order.pk, 'shipped')
        services.update_status(order.pk, 'delivered')
        balance = VendorBalance.objects.get(organization=self.organization)
        self.assertEqual(balance.pending_balance, Decimal('0.00'))
        self.assertEqual(balance.available_balance, Decimal('45.00'))

    def test_cancel_releases_stock_and_refunds(self):
        order = self._place(quantity=4)
        order = services.cancel(order.pk, 'Customer changed mind')
        self.assertEqual(order.status, 'cancelled')
        self.assertEqual(order.cancel_reason, 'Customer changed mind')
        self.assertEqual(self._record().reserved, 0)
        balance = VendorBalance.objects.get(organization=self.organization)
        self.assertEqual(balance.pending_balance, Decimal('0.00'))
        self.assertEqual(balance.total_earnings, Decimal('0.00'))

    def test_cannot_cancel_shipped_order(self):
        order = self._place()
        services.update_status(order.pk, 'shipped')
        with self.assertRaises(BadRequestError):
            services.cancel(order.pk, 'Too late')

    def test_terminal_order_status_locked(self):
        order = self._place()
        services.cancel(order.pk, 'No longer needed')
        with self.assertRaises(BadRequestError) as ctx:
            services.update_status(order.pk, 'processing')
        self.assertEqual(ctx.exception.message, 'Cannot change status of a cancelled order')

    def test_shipped_order_cannot_move_back(self):
        order = self._place()
        services.update_status(order.pk, 'shipped')
        with self.assertRaises(BadRequestError) as ctx:
            services.update_status(order.pk, 'processing')
        self.assertEqual(ctx.exception.message, 'Cannot change order status from shipped to processing')

    def test_delivered_order_cannot_be_reopened(self):
        order = self._place()
        services.update_status(order.pk, 'shipped')
        services.update_status(order.pk, 'delivered')
        for target in ('pending', 'processing', 'shipped', 'cancelled'):
            with self.assertRaises(BadRequestError):
                services.update_status(order.pk, target)

    def test_refunded_status_not_set_directly(self):
        order = self._place()
        services.update_status(order.pk, 'shipped')
        services.update_status(order.pk, 'delivered')
        with self.assertRaises(BadRequestError) as ctx:
            services.update_status(order.pk, 'refunded')
        self.assertEqual(ctx.exception.message, 'Orders are marked refunded by completing their refunds')

    def test_shipped_order_never_frees_other_reservations(self):
        """Two orders share a location; the shipped one cannot touch the other's reservation"""
        first = self._place(quantity=2)
        self._place(quantity=2)
        services.update_status(first.pk, 'shipped')

        with self.assertRaises(BadRequestError):
            services.update_status(first.pk, 'processing')
        with self.assertRaises(BadRequestError):
            services.cancel(first.pk, 'Changed mind')

        record = self._record()
        self.assertEqual(record.quantity, 8)
        self.assertEqual(record.reserved, 2)

    def test_cancel_releases_only_the_lines_location(self):
        other_location = TestDataFactory.create_location()
        TestDataFactory.create_inventory(self.variant, other_location, quantity=3, reserved=3)
        order = self._place(quantity=2)
        services.cancel(order.pk, 'Changed mind')
        self.assertEqual(self._record().reserved, 0)
        self.assertEqual(VariantInventory.objects.get(variant=self.variant, location=other_location).reserved, 3)


class OrderAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.customer = TestDataFactory.create_user()
        self.other = TestDataFactory.create_user()
        self.variant = TestDataFactory.create_variant(price=Decimal('10.00'))
        self.location = TestDataFactory.create_location()
        TestDataFactory.create_inventory(self.variant, self.location, quantity=5)

    def _payload(self, quantity=1):
        return {'items': [{'variant_id': self.variant.pk, 'quantity': quantity}]}

    def test_place_order(self):
        self.client.authenticate_user(self.customer)
        response = self.client.post('/api/v1/orders/', self._payload(2), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'pending')
        self.assertEqual(len(response.data['items']), 1)

    def test_place_order_requires_auth(self):
        response = self.client.post('/api/v1/orders/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_order_hidden_from_other_users(self):
        order = services.create_order(self.customer, [{'variant_id': self.variant.pk, 'quantity': 1}])
        self.client.authenticate_user(self.other)
        response = self.client.get(f'/api/v1/orders/{order.pk}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_list_only_own_orders(self):
        services.create_order(self.customer, [{'variant_id': self.variant.pk, 'quantity': 1}])
        services.create_order(self.other, [{'variant_id': self.variant.pk, 'quantity': 1}])
        self.client.authenticate_user(self.customer)
        response = self.client.get('/api/v1/orders/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['meta']['total_items'], 1)

    def test_status_update_requires_permission(self):
        order = services.create_order(self.customer, [{'variant_id': self.variant.pk, 'quantity': 1}])
        self.client.authenticate_user(self.customer)
        response = self.client.patch(f'/api/v1/orders/{order.pk}/status/', {'status': 'shipped'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_status_update_by_manager(self):
        order = services.create_order(self.customer, [{'variant_id': self.variant.pk, 'quantity': 1}])
        manager = TestDataFactory.create_user()
        TestDataFactory.grant_permissions(manager, 'order:manage')
        self.client.authenticate_user(manager)
        response = self.client.patch(f'/api/v1/orders/{order.pk}/status/', {'status': 'processing'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'processing')

    def test_customer_cancels_own_order(self):
        order = services.create_order(self.customer, [{'variant_id': self.variant.pk, 'quantity': 1}])
        self.client.authenticate_user(self.customer)
        response = self.client.post(f'/api/v1/orders/{order.pk}/cancel/', {'reason': 'Ordered twice'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'cancelled')
        history = self.client.get(f'/api/v1/orders/{order.pk}/history/')
        self.assertEqual([h['status'] for h in history.data], ['pending', 'cancelled'])


class RefundWorkflowTests(TestCase):
    """Test refund requests, decisions and their effect on vendor balances"""

    def setUp(self):
        self.customer = TestDataFactory.create_user()
        self.manager = TestDataFactory.create_user()
        self.owner = TestDataFactory.create_user()
        self.organization = TestDataFactory.create_organization(
            owner=self.owner, fee_type='percentage', fee_amount=Decimal('10.00'))
        product = TestDataFactory.create_product(organization=self.organization)
        self.variant = TestDataFactory.create_variant(product=product, price=Decimal('25.00'))
        TestDataFactory.create_inventory(self.variant, TestDataFactory.create_location(), quantity=10)
        self.order = self._delivered_order(self.variant, 2)
        self.item = self.order.items.get()

    def _delivered_order(self, variant, quantity):
        order = services.create_order(self.customer, [{'variant_id': variant.pk, 'quantity': quantity}])
        services.update_status(order.pk, 'shipped')
        services.update_status(order.pk, 'delivered')
        return order

    def _request(self, quantity=1, **extra):
        item = {'order_item_id': self.item.pk, 'quantity': quantity}
        item.update(extra)
        return refunds.create_refund(self.customer, self.order.pk, [item], 'Damaged on arrival')

    def _balance(self):
        return VendorBalance.objects.get(organization=self.organization)

    def test_request_debits_vendor_share(self):
        refund, = self._request(quantity=1)
        self.assertEqual(refund.status, 'requested')
        self.assertEqual(refund.amount, Decimal('25.00'))
        self.assertEqual(refund.organization_amount, Decimal('22.50'))
        self.assertEqual(refund.items.get().quantity, 1)
        balance = self._balance()
        self.assertEqual(balance.available_balance, Decimal('22.50'))
        self.assertEqual(balance.total_earnings, Decimal('22.50'))
        self.assertTrue(balance.transactions.filter(transaction_type='refund', reference_type='refund').exists())

    def test_partial_amount_within_line_total(self):
        refund, = self._request(quantity=1, amount=Decimal('10.00'))
        self.assertEqual(refund.amount, Decimal('10.00'))
        with self.assertRaises(BadRequestError):
            self._request(quantity=1, amount=Decimal('30.00'))

    def test_order_must_be_delivered(self):
        pending = services.create_order(self.customer, [{'variant_id': self.variant.pk, 'quantity': 1}])
        with self.assertRaises(BadRequestError) as ctx:
            refunds.create_refund(self.customer, pending.pk,
                                  [{'order_item_id': pending.items.get().pk, 'quantity': 1}], 'Late')
        self.assertEqual(ctx.exception.message, 'Order must be delivered before requesting a refund')

    def test_only_own_orders(self):
        with self.assertRaises(NotFoundError):
            refunds.create_refund(self.manager, self.order.pk,
                                  [{'order_item_id': self.item.pk, 'quantity': 1}], 'Not mine')

    def test_item_must_belong_to_order(self):
        other = self._delivered_order(self.variant, 1)
        with self.assertRaises(BadRequestError) as ctx:
            refunds.create_refund(self.customer, self.order.pk,
                                  [{'order_item_id': other.items.get().pk, 'quantity': 1}], 'Wrong order')
        self.assertEqual(ctx.exception.message, 'Some items do not belong to this order')

    def test_cannot_refund_more_than_remaining(self):
        self._request(quantity=1)
        with self.assertRaises(BadRequestError) as ctx:
            self._request(quantity=2)
        self.assertIn('exceeds refundable quantity (1)', ctx.exception.message)

    def test_insufficient_vendor_balance_keeps_nothing(self):
        balances.record_payout(self.organization.pk, Decimal('45.00'))
        with self.assertRaises(BadRequestError) as ctx:
            self._request(quantity=1)
        self.assertEqual(ctx.exception.message, 'Failed to process refund: Insufficient vendor balance')
        self.assertFalse(Refund.objects.exists())

    def test_reject_restores_balance(self):
        refund, = self._request(quantity=2)
        refund = refunds.reject_refund(refund.pk, self.manager, 'Item was used')
        self.assertEqual(refund.status, 'rejected')
        self.assertEqual(refund.resolution_note, 'Item was used')
        self.assertEqual(self._balance().available_balance, Decimal('45.00'))
        with self.assertRaises(BadRequestError):
            refunds.approve_refund(refund.pk, self.manager)

    def test_rejected_quantity_can_be_requested_again(self):
        refund, = self._request(quantity=2)
        refunds.reject_refund(refund.pk, self.manager, 'Missing photos')
        again, = self._request(quantity=2)
        self.assertEqual(again.status, 'requested')

    def test_complete_requires_approval(self):
        refund, = self._request(quantity=1)
        with self.assertRaises(BadRequestError) as ctx:
            refunds.complete_refund(refund.pk, self.manager)
        self.assertEqual(ctx.exception.message, 'Refund must be approved before completing')

    def test_full_refund_marks_order_refunded(self):
        first, = self._request(quantity=1)
        refunds.approve_refund(first.pk, self.manager)
        refunds.complete_refund(first.pk, self.manager)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, 'delivered')

        second, = self._request(quantity=1)
        refunds.approve_refund(second.pk, self.manager, note='Approved after inspection')
        refunds.complete_refund(second.pk, self.manager)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, 'refunded')
        self.assertEqual(self.order.status_history.last().status, 'refunded')

    def test_customer_cancels_own_request(self):
        refund, = self._request(quantity=1)
        with self.assertRaises(BadRequestError):
            refunds.cancel_refund(refund.pk, self.manager)
        refund = refunds.cancel_refund(refund.pk, self.customer)
        self.assertEqual(refund.status, 'cancelled')
        self.assertEqual(self._balance().available_balance, Decimal('45.00'))

    def test_split_per_vendor(self):
        other_org = TestDataFactory.create_organization()
        other_variant = TestDataFactory.create_variant(
            product=TestDataFactory.create_product(organization=other_org), price=Decimal('40.00'))
        TestDataFactory.create_inventory(other_variant, TestDataFactory.create_location(), quantity=5)
        order = services.create_order(self.customer, [
            {'variant_id': self.variant.pk, 'quantity': 1},
            {'variant_id': other_variant.pk, 'quantity': 1},
        ])
        services.update_status(order.pk, 'shipped')
        services.update_status(order.pk, 'delivered')

        created = refunds.create_refund(
            self.customer, order.pk,
            [{'order_item_id': item.pk, 'quantity': 1} for item in order.items.all()],
            'Wrong size',
        )
        self.assertEqual(len(created), 2)
        self.assertEqual({r.organization_id for r in created}, {self.organization.pk, other_org.pk})
        self.assertEqual(sorted(r.amount for r in created), [Decimal('25.00'), Decimal('40.00')])

    def test_stats(self):
        first, = self._request(quantity=1)
        second, = self._request(quantity=1)
        refunds.approve_refund(first.pk, self.manager)
        refunds.reject_refund(second.pk, self.manager, 'Duplicate')
        stats = refunds.refund_stats(self.organization.pk)
        self.assertEqual(stats['total'], 2)
        self.assertEqual(stats['by_status']['approved']['count'], 1)
        self.assertEqual(stats['by_status']['rejected']['count'], 1)
        self.assertEqual(stats['by_status']['completed']['count'], 0)
        self.assertEqual(stats['total_amount'], Decimal('25.00'))


class RefundAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.customer = TestDataFactory.create_user()
        self.owner = TestDataFactory.create_user()
        self.organization = TestDataFactory.create_organization(owner=self.owner)
        variant = TestDataFactory.create_variant(
            product=TestDataFactory.create_product(organization=self.organization), price=Decimal('20.00'))
        TestDataFactory.create_inventory(variant, TestDataFactory.create_location(), quantity=5)
        self.order = services.create_order(self.customer, [{'variant_id': variant.pk, 'quantity': 1}])
        services.update_status(self.order.pk, 'shipped')
        services.update_status(self.order.pk, 'delivered')
        self.payload = {'reason': 'Broken', 'items': [{'order_item_id': self.order.items.get().pk, 'quantity': 1}]}

    def test_customer_requests_refund(self):
        self.client.authenticate_user(self.customer)
        response = self.client.post(f'/api/v1/orders/{self.order.pk}/refunds/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data[0]['status'], 'requested')
        self.assertEqual(response.data[0]['amount'], '20.00')

        listed = self.client.get(f'/api/v1/orders/{self.order.pk}/refunds/')
        self.assertEqual(len(listed.data), 1)

    def test_approval_requires_permission(self):
        refund, = refunds.create_refund(self.customer, self.order.pk, self.payload['items'], 'Broken')
        self.client.authenticate_user(self.customer)
        response = self.client.post(f'/api/v1/refunds/{refund.pk}/approve/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        manager = TestDataFactory.create_user()
        TestDataFactory.grant_permissions(manager, 'order:manage')
        self.client.authenticate_user(manager)
        response = self.client.post(f'/api/v1/refunds/{refund.pk}/approve/', {'note': 'ok'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'approved')
        response = self.client.post(f'/api/v1/refunds/{refund.pk}/complete/', {}, format='json')
        self.assertEqual(response.data['status'], 'completed')
        self.assertEqual(self.client.get(f'/api/v1/orders/{self.order.pk}/').data['status'], 'refunded')

    def test_vendor_member_sees_organization_refunds(self):
        refunds.create_refund(self.customer, self.order.pk, self.payload['items'], 'Broken')
        self.client.authenticate_user(self.owner)
        response = self.client.get(f'/api/v1/organizations/{self.organization.pk}/refunds/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['meta']['total_items'], 1)

        self.client.authenticate_user(self.customer)
        response = self.client.get(f'/api/v1/organizations/{self.organization.pk}/refunds/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_refund_detail_hidden_from_strangers(self):
        refund, = refunds.create_refund(self.customer, self.order.pk, self.payload['items'], 'Broken')
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get(f'/api/v1/refunds/{refund.pk}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
