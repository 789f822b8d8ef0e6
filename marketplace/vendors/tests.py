"""
Test suite for vendor balances
Tests: pending holds, releases, refunds, payouts and the balance API
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status
from marketplace.core.exceptions import BadRequestError, NotFoundError
from marketplace.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from marketplace.vendors import services
from marketplace.vendors.models import VendorBalanceTransaction


class VendorBalanceServiceTests(TestCase):

    def setUp(self):
        self.organization = TestDataFactory.create_organization()

    def test_credit_pending_holds_funds(self):
        balance = services.credit_pending(self.organization.pk, Decimal('45.00'), 7)
        self.assertEqual(balance.pending_balance, Decimal('45.00'))
        self.assertEqual(balance.available_balance, Decimal('0.00'))
        self.assertEqual(balance.total_earnings, Decimal('45.00'))
        entry = VendorBalanceTransaction.objects.get()
        self.assertEqual(entry.transaction_type, 'hold')
        self.assertEqual(entry.balance_before, Decimal('0.00'))
        self.assertEqual(entry.balance_after, Decimal('45.00'))
        self.assertEqual(entry.reference_id, '7')

    def test_release_moves_pending_to_available(self):
        services.credit_pending(self.organization.pk, Decimal('45.00'), 7)
        balance = services.release_pending(self.organization.pk, Decimal('40.00'), 7)
        self.assertEqual(balance.pending_balance, Decimal('5.00'))
        self.assertEqual(balance.available_balance, Decimal('40.00'))

    def test_release_more_than_pending(self):
        services.credit_pending(self.organization.pk, Decimal('10.00'), 1)
        with self.assertRaises(BadRequestError) as ctx:
            services.release_pending(self.organization.pk, Decimal('12.00'), 1)
        self.assertEqual(ctx.exception.message, 'Insufficient pending balance. Available: 10.00, Requested: 12.00')

    def test_refund_reduces_pending_and_earnings(self):
        services.credit_pending(self.organization.pk, Decimal('20.00'), 3)
        balance = services.refund(self.organization.pk, Decimal('20.00'), 3)
        self.assertEqual(balance.pending_balance, Decimal('0.00'))
        self.assertEqual(balance.total_earnings, Decimal('0.00'))

    def test_payout_from_available(self):
        services.credit_pending(self.organization.pk, Decimal('50.00'), 1)
        services.release_pending(self.organization.pk, Decimal('50.00'), 1)
        balance = services.record_payout(self.organization.pk, Decimal('30.00'), reference_id='PO-1')
        self.assertEqual(balance.available_balance, Decimal('20.00'))
        self.assertEqual(balance.total_paid_out, Decimal('30.00'))
        self.assertIsNotNone(balance.last_payout_at)

    def test_payout_exceeding_available(self):
        with self.assertRaises(BadRequestError):
            services.record_payout(self.organization.pk, Decimal('1.00'))

    def test_refund_debit_and_restore(self):
        services.credit_pending(self.organization.pk, Decimal('30.00'), 1)
        services.release_pending(self.organization.pk, Decimal('30.00'), 1)
        balance = services.debit_for_refund(self.organization.pk, Decimal('12.00'), 4)
        self.assertEqual(balance.available_balance, Decimal('18.00'))
        self.assertEqual(balance.total_earnings, Decimal('18.00'))

        balance = services.credit_available(self.organization.pk, Decimal('12.00'), 4)
        self.assertEqual(balance.available_balance, Decimal('30.00'))
        self.assertEqual(balance.total_earnings, Decimal('30.00'))
        entries = VendorBalanceTransaction.objects.filter(reference_type='refund').order_by('id')
        self.assertEqual([e.transaction_type for e in entries], ['refund', 'credit'])
        self.assertEqual(entries[0].balance_after, Decimal('18.00'))

    def test_refund_debit_exceeding_available(self):
        services.credit_pending(self.organization.pk, Decimal('10.00'), 1)
        with self.assertRaises(BadRequestError) as ctx:
            services.debit_for_refund(self.organization.pk, Decimal('5.00'), 2)
        self.assertEqual(ctx.exception.message,
                         'Insufficient available balance for refund. Available: 0.00, Required: 5.00')

    def test_list_transactions_without_balance(self):
        with self.assertRaises(NotFoundError):
            services.list_transactions(self.organization.pk)


class VendorBalanceAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.owner = TestDataFactory.create_user()
        self.organization = TestDataFactory.create_organization(owner=self.owner)

    def test_member_sees_balance(self):
        services.credit_pending(self.organization.pk, Decimal('12.00'), 1)
        self.client.authenticate_user(self.owner)
        response = self.client.get(f'/api/v1/vendors/{self.organization.pk}/balance/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pending_balance'], '12.00')

    def test_non_member_forbidden(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get(f'/api/v1/vendors/{self.organization.pk}/balance/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_transactions_paginated(self):
        for order_id in range(3):
            services.credit_pending(self.organization.pk, Decimal('1.00'), order_id)
        self.client.authenticate_user(self.owner)
        response = self.client.get(f'/api/v1/vendors/{self.organization.pk}/balance/transactions/?limit=2')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['meta']['total_items'], 3)
        self.assertEqual(len(response.data['results']), 2)

    def test_payout_admin_only(self):
        self.client.authenticate_user(self.owner)
        response = self.client.post(f'/api/v1/vendors/{self.organization.pk}/balance/payouts/',
                                    {'amount': '5.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_payout(self):
        services.credit_pending(self.organization.pk, Decimal('10.00'), 1)
        services.release_pending(self.organization.pk, Decimal('10.00'), 1)
        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.post(f'/api/v1/vendors/{self.organization.pk}/balance/payouts/',
                                    {'amount': '4.00', 'reference': 'PO-9'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['available_balance'], '6.00')
