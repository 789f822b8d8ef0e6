"""
Test suite for Payments
Tests: manual gateway, HTTP gateway error handling, callbacks and the payment API
"""
from decimal import Decimal
from unittest.mock import patch, MagicMock

import requests
from django.test import TestCase, override_settings
from rest_framework import status
from marketplace.core.exceptions import BadRequestError, NotFoundError
from marketplace.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from marketplace.orders import services as orders
from marketplace.payments import services
from marketplace.payments.gateways import HttpGateway, get_gateway
from marketplace.payments.models import Payment, TransactionLog


class PaymentTestMixin:

    def _order(self, user=None):
        variant = TestDataFactory.create_variant(price=Decimal('30.00'))
        TestDataFactory.create_inventory(variant, TestDataFactory.create_location(), quantity=5)
        return orders.create_order(user or self.user, [{'variant_id': variant.pk, 'quantity': 1}])


class ManualGatewayTests(PaymentTestMixin, TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.order = self._order()

    def test_manual_payment_captured_and_order_processing(self):
        payment, result = services.initiate(self.order.pk, 'manual')
        self.assertTrue(result.success)
        self.assertEqual(payment.status, 'captured')
        self.assertEqual(payment.amount, Decimal('30.00'))
        self.assertTrue(payment.transaction_id.startswith('MAN-'))
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, 'processing')
        self.assertEqual(TransactionLog.objects.filter(payment=payment).count(), 1)

    def test_order_cannot_be_paid_twice(self):
        services.initiate(self.order.pk, 'manual')
        with self.assertRaises(BadRequestError) as ctx:
            services.initiate(self.order.pk, 'manual')
        self.assertEqual(ctx.exception.message, 'Order already paid')

    def test_cancelled_order_rejected(self):
        orders.cancel(self.order.pk, 'Changed mind')
        with self.assertRaises(BadRequestError):
            services.initiate(self.order.pk, 'manual')

    def test_unknown_order(self):
        with self.assertRaises(NotFoundError):
            services.initiate(999999, 'manual')

    def test_other_users_order_hidden(self):
        stranger = TestDataFactory.create_user()
        with self.assertRaises(NotFoundError):
            services.initiate(self.order.pk, 'manual', user=stranger)

    def test_unsupported_gateway(self):
        with self.assertRaises(BadRequestError) as ctx:
            get_gateway('bitcoin')
        self.assertIn('Unsupported payment gateway: bitcoin', ctx.exception.message)


@override_settings(HTTP_GATEWAY_URL='https://pay.example.test/', HTTP_GATEWAY_API_KEY='secret')
class HttpGatewayTests(PaymentTestMixin, TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.order = self._order()

    def _response(self, data):
        response = MagicMock()
        response.json.return_value = data
        response.raise_for_status.return_value = None
        return response

    @patch('marketplace.payments.gateways.requests.post')
    def test_initiate_posts_to_gateway(self, mock_post):
        mock_post.return_value = self._response({
            'transaction_id': 'TXN-1', 'status': 'pending', 'redirect_url': 'https://pay.example.test/c/1',
        })
        payment, result = services.initiate(self.order.pk, 'http', callback_url='https://shop.test/cb')
        self.assertEqual(payment.status, 'pending')
        self.assertEqual(result.redirect_url, 'https://pay.example.test/c/1')

        args, kwargs = mock_post.call_args
        self.assertEqual(args[0], 'https://pay.example.test/payments')
        self.assertEqual(kwargs['json']['amount'], '30.00')
        self.assertEqual(kwargs['headers']['Authorization'], 'Bearer secret')
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, 'pending')

    @patch('marketplace.payments.gateways.requests.post')
    def test_network_error_becomes_bad_request(self, mock_post):
        mock_post.side_effect = requests.ConnectionError('connection refused')
        with self.assertRaises(BadRequestError) as ctx:
            services.initiate(self.order.pk, 'http')
        self.assertIn('Gateway error', ctx.exception.message)
        self.assertFalse(Payment.objects.exists())

    @patch('marketplace.payments.gateways.requests.get')
    def test_verify_updates_status(self, mock_get):
        payment = Payment.objects.create(order=self.order, amount=Decimal('30.00'), gateway='http',
                                         provider='HTTP', transaction_id='TXN-2', status='pending')
        mock_get.return_value = self._response({'transaction_id': 'TXN-2', 'status': 'captured'})
        payment, result = services.verify('TXN-2')
        self.assertTrue(result.success)
        self.assertEqual(payment.status, 'captured')
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, 'processing')

    @patch('marketplace.payments.gateways.requests.get')
    def test_verify_invalid_json_keeps_status(self, mock_get):
        Payment.objects.create(order=self.order, amount=Decimal('30.00'), gateway='http',
                               provider='HTTP', transaction_id='TXN-3', status='pending')
        response = self._response(None)
        response.json.side_effect = ValueError('no json')
        mock_get.return_value = response
        payment, result = services.verify('TXN-3')
        self.assertFalse(result.success)
        self.assertEqual(payment.status, 'pending')

    def test_gateway_strips_trailing_slash(self):
        self.assertEqual(HttpGateway().base_url, 'https://pay.example.test')


class PaymentAPITests(PaymentTestMixin, TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user()
        self.order = self._order()

    def test_initiate_endpoint(self):
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/v1/payments/initiate/', {'order_id': self.order.pk}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['payment']['status'], 'captured')

    @override_settings(HTTP_GATEWAY_URL='https://pay.example.test/')
    @patch('marketplace.payments.gateways.requests.get')
    def test_callback_status_read_back_from_gateway(self, mock_get):
        payment = Payment.objects.create(order=self.order, amount=Decimal('30.00'), gateway='http',
                                         provider='HTTP', transaction_id='TXN-9', status='pending')
        mock_get.return_value = MagicMock(**{'json.return_value': {'transaction_id': 'TXN-9', 'status': 'failed'}})
        response = self.client.post('/api/v1/payments/callback/http/',
                                    {'transaction_id': 'TXN-9', 'status': 'captured'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(mock_get.call_args[0][0], 'https://pay.example.test/payments/TXN-9')
        payment.refresh_from_db()
        self.assertEqual(payment.status, 'failed')

    def test_callback_on_other_gateway_rejected(self):
        """A manual callback cannot settle a payment created through the HTTP gateway"""
        payment = Payment.objects.create(order=self.order, amount=Decimal('30.00'), gateway='http',
                                         provider='HTTP', transaction_id='TXN-1', status='pending')
        response = self.client.post('/api/v1/payments/callback/manual/', {'transaction_id': 'TXN-1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        payment.refresh_from_db()
        self.order.refresh_from_db()
        self.assertEqual(payment.status, 'pending')
        self.assertEqual(self.order.status, 'pending')

    def test_manual_gateway_refuses_callbacks(self):
        payment = Payment.objects.create(order=self.order, amount=Decimal('30.00'), gateway='manual',
                                         provider='Manual', transaction_id='MAN-1', status='pending')
        response = self.client.post('/api/v1/payments/callback/manual/',
                                    {'transaction_id': 'MAN-1', 'status': 'captured'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Manual payments do not accept gateway callbacks')
        payment.refresh_from_db()
        self.assertEqual(payment.status, 'pending')

    @patch('marketplace.payments.gateways.requests.get')
    def test_unknown_status_from_gateway_rejected(self, mock_get):
        payment = Payment.objects.create(order=self.order, amount=Decimal('30.00'), gateway='http',
                                         provider='HTTP', transaction_id='TXN-4', status='pending')
        mock_get.return_value = MagicMock(**{'json.return_value': {'transaction_id': 'TXN-4', 'status': 'bogus'}})
        response = self.client.post('/api/v1/payments/callback/http/', {'transaction_id': 'TXN-4'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid payment status: bogus')
        payment.refresh_from_db()
        self.assertEqual(payment.status, 'pending')

    @patch('marketplace.payments.gateways.requests.get')
    def test_unverifiable_callback_rejected(self, mock_get):
        payment = Payment.objects.create(order=self.order, amount=Decimal('30.00'), gateway='http',
                                         provider='HTTP', transaction_id='TXN-5', status='pending')
        mock_get.side_effect = requests.Timeout('timed out')
        response = self.client.post('/api/v1/payments/callback/http/', {'transaction_id': 'TXN-5'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        payment.refresh_from_db()
        self.assertEqual(payment.status, 'pending')
        self.assertTrue(payment.logs.filter(event_type='callback_rejected').exists())

    def test_callback_without_transaction(self):
        response = self.client.post('/api/v1/payments/callback/manual/', {'status': 'captured'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid callback: missing transaction ID')

    def test_order_payments_hidden_from_strangers(self):
        services.initiate(self.order.pk, 'manual')
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get(f'/api/v1/payments/order/{self.order.pk}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
