"""
Test suite for Cart
Tests: guest and user carts, stock checks, merging and checkout
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status
from marketplace.cart import services
from marketplace.cart.models import Cart
from marketplace.core.exceptions import BadRequestError, NotFoundError
from marketplace.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from marketplace.inventory.models import VariantInventory
from marketplace.orders.models import Order


class CartServiceTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.variant = TestDataFactory.create_variant(price=Decimal('12.50'))
        self.location = TestDataFactory.create_location()
        TestDataFactory.create_inventory(self.variant, self.location, quantity=5)

    def test_cart_requires_user_or_session(self):
        with self.assertRaises(BadRequestError):
            services.get_or_create_cart()

    def test_same_cart_returned_for_user(self):
        first = services.get_or_create_cart(user=self.user)
        self.assertEqual(services.get_or_create_cart(user=self.user).pk, first.pk)

    def test_add_item_snapshots_price(self):
        cart = services.get_or_create_cart(user=self.user)
        item = services.add_item(cart, self.variant.pk, 2)
        self.variant.price = Decimal('99.00')
        self.variant.save()
        item.refresh_from_db()
        self.assertEqual(item.unit_price, Decimal('12.50'))
        self.assertEqual(item.line_total, Decimal('25.00'))

    def test_add_same_variant_merges_lines(self):
        cart = services.get_or_create_cart(user=self.user)
        services.add_item(cart, self.variant.pk, 2)
        item = services.add_item(cart, self.variant.pk, 1)
        self.assertEqual(item.quantity, 3)
        self.assertEqual(cart.items.count(), 1)

    def test_add_more_than_stock(self):
        cart = services.get_or_create_cart(user=self.user)
        services.add_item(cart, self.variant.pk, 4)
        with self.assertRaises(BadRequestError) as ctx:
            services.add_item(cart, self.variant.pk, 2)
        self.assertEqual(ctx.exception.message, 'Cannot add 2 more. Only 5 units available')

    def test_out_of_stock(self):
        VariantInventory.objects.filter(variant=self.variant).update(reserved=5)
        cart = services.get_or_create_cart(user=self.user)
        with self.assertRaises(BadRequestError) as ctx:
            services.add_item(cart, self.variant.pk, 1)
        self.assertEqual(ctx.exception.message, 'This product is currently out of stock')

    def test_inactive_variant_rejected(self):
        variant = TestDataFactory.create_variant(is_active=False)
        cart = services.get_or_create_cart(user=self.user)
        with self.assertRaises(BadRequestError) as ctx:
            services.add_item(cart, variant.pk, 1)
        self.assertEqual(ctx.exception.message, 'Product variant is not available')

    def test_update_to_zero_removes_line(self):
        cart = services.get_or_create_cart(user=self.user)
        item = services.add_item(cart, self.variant.pk, 1)
        self.assertIsNone(services.update_item(cart, item.pk, 0))
        self.assertFalse(cart.items.exists())

    def test_item_of_other_cart_not_found(self):
        other_cart = services.get_or_create_cart(session_id='guest-1')
        item = services.add_item(other_cart, self.variant.pk, 1)
        cart = services.get_or_create_cart(user=self.user)
        with self.assertRaises(NotFoundError):
            services.remove_item(cart, item.pk)

    def test_merge_guest_cart(self):
        guest = services.get_or_create_cart(session_id='guest-abc')
        services.add_item(guest, self.variant.pk, 2)
        cart = services.get_or_create_cart(user=self.user)
        services.add_item(cart, self.variant.pk, 1)

        merged = services.merge_guest_cart('guest-abc', self.user)
        self.assertEqual(merged.pk, cart.pk)
        self.assertEqual(merged.items.get().quantity, 3)
        guest.refresh_from_db()
        self.assertEqual(guest.status, 'converted')

    def test_summary(self):
        cart = services.get_or_create_cart(user=self.user)
        services.add_item(cart, self.variant.pk, 2)
        summary = services.summarize(cart, discount=Decimal('5.00'), tax_rate=Decimal('0.10'),
                                     shipping_amount=Decimal('3.00'))
        self.assertEqual(summary['subtotal'], Decimal('25.00'))
        self.assertEqual(summary['tax_amount'], Decimal('2.00'))
        self.assertEqual(summary['total'], Decimal('25.00'))
        self.assertEqual(summary['total_quantity'], 2)

    def test_checkout_places_order(self):
        cart = services.get_or_create_cart(user=self.user)
        services.add_item(cart, self.variant.pk, 2)
        order = services.checkout(cart, self.user)
        self.assertEqual(order.items.get().quantity, 2)
        cart.refresh_from_db()
        self.assertEqual(cart.status, 'converted')
        self.assertEqual(VariantInventory.objects.get(variant=self.variant).reserved, 2)

    def test_checkout_empty_cart(self):
        cart = services.get_or_create_cart(user=self.user)
        with self.assertRaises(BadRequestError) as ctx:
            services.checkout(cart, self.user)
        self.assertEqual(ctx.exception.message, 'Cart is empty')

    def test_converted_cart_is_read_only(self):
        cart = services.get_or_create_cart(user=self.user)
        services.add_item(cart, self.variant.pk, 1)
        services.checkout(cart, self.user)
        with self.assertRaises(BadRequestError) as ctx:
            services.add_item(cart, self.variant.pk, 1)
        self.assertEqual(ctx.exception.message, 'Cart is not active')


class CartAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.variant = TestDataFactory.create_variant(price=Decimal('8.00'))
        TestDataFactory.create_inventory(self.variant, TestDataFactory.create_location(), quantity=3)

    def test_guest_cart_via_session_header(self):
        response = self.client.post('/api/v1/cart/items/', {'variant_id': self.variant.pk, 'quantity': 2},
                                    format='json', HTTP_X_SESSION_ID='sess-1')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        response = self.client.get('/api/v1/cart/', HTTP_X_SESSION_ID='sess-1')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['summary']['subtotal'], '16.00')

    def test_guest_without_session_rejected(self):
        response = self.client.get('/api/v1/cart/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_checkout_requires_auth(self):
        response = self.client.post('/api/v1/cart/checkout/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_login_merge_and_checkout(self):
        self.client.post('/api/v1/cart/items/', {'variant_id': self.variant.pk, 'quantity': 1},
                         format='json', HTTP_X_SESSION_ID='sess-2')
        user = TestDataFactory.create_user()
        self.client.authenticate_user(user)
        response = self.client.post('/api/v1/cart/merge/', {}, format='json', HTTP_X_SESSION_ID='sess-2')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['items']), 1)

        response = self.client.post('/api/v1/cart/checkout/', {'shipping_amount': '2.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Order.objects.get().total_amount, Decimal('10.00'))
        self.assertFalse(Cart.objects.filter(user=user, status='active').exists())
