"""
Test suite for core: authentication, audit logging, pagination and request ids
"""
from django.test import TestCase
from rest_framework import status
from marketplace.core.models import AuditLog
from marketplace.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from marketplace.core.utils import create_audit_log, paginate_queryset, parse_int


class AuthAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_register_returns_tokens(self):
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'shopper',
            'email': 'shopper@test.com',
            'password': 'Str0ng-passw0rd!',
            'password_confirm': 'Str0ng-passw0rd!',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('access', response.data)
        self.assertEqual(response.data['user']['user_type'], 'customer')

    def test_register_password_mismatch(self):
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'shopper',
            'email': 'shopper@test.com',
            'password': 'Str0ng-passw0rd!',
            'password_confirm': 'different-passw0rd!',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('password', response.data)

    def test_cannot_register_as_admin(self):
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'sneaky',
            'email': 'sneaky@test.com',
            'password': 'Str0ng-passw0rd!',
            'password_confirm': 'Str0ng-passw0rd!',
            'user_type': 'admin',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_login_includes_user(self):
        user = TestDataFactory.create_user(username='buyer')
        response = self.client.post('/api/v1/auth/login/', {'username': 'buyer', 'password': 'testpass123'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['id'], user.pk)

    def test_me_lists_permissions(self):
        user = TestDataFactory.create_user()
        TestDataFactory.grant_permissions(user, 'inventory:view', 'order:manage')
        self.client.authenticate_user(user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['permissions'], ['inventory:view', 'order:manage'])

    def test_request_id_echoed(self):
        response = self.client.get('/api/v1/auth/me/', HTTP_X_REQUEST_ID='req-123')
        self.assertEqual(response['X-Request-ID'], 'req-123')


class AuditLogTests(TestCase):

    def test_create_audit_log(self):
        user = TestDataFactory.create_user()
        log = create_audit_log(action='stock_adjust', model_name='VariantInventory', object_id=5,
                               changes={'delta': 3}, user=user)
        self.assertEqual(log.object_id, '5')
        self.assertEqual(log.user, user)

    def test_missing_fields_skipped(self):
        self.assertIsNone(create_audit_log(action='stock_adjust', model_name='VariantInventory'))
        self.assertFalse(AuditLog.objects.exists())

    def test_audit_logs_admin_only(self):
        client = AuthenticatedAPIClient()
        client.authenticate_user(TestDataFactory.create_user())
        self.assertEqual(client.get('/api/v1/audit-logs/').status_code, status.HTTP_403_FORBIDDEN)
        client.authenticate_user(TestDataFactory.create_admin())
        self.assertEqual(client.get('/api/v1/audit-logs/').status_code, status.HTTP_200_OK)


class PaginationTests(TestCase):

    def setUp(self):
        for _ in range(5):
            TestDataFactory.create_user()

    def test_meta(self):
        from django.contrib.auth import get_user_model
        page = paginate_queryset(get_user_model().objects.order_by('id'), page=2, limit=2)
        self.assertEqual(len(page['results']), 2)
        self.assertEqual(page['meta'], {
            'current_page': 2,
            'total_pages': 3,
            'total_items': 5,
            'items_per_page': 2,
            'has_next': True,
            'has_prev': True,
        })

    def test_out_of_range_page_is_empty(self):
        from django.contrib.auth import get_user_model
        page = paginate_queryset(get_user_model().objects.order_by('id'), page=9, limit=2)
        self.assertEqual(page['results'], [])
        self.assertEqual(page['meta']['total_items'], 5)

    def test_parse_int(self):
        self.assertEqual(parse_int('7', 1), 7)
        self.assertEqual(parse_int('abc', 1), 1)
        self.assertIsNone(parse_int(None, None))
