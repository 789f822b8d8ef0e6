"""
Test suite for RBAC: roles, permissions and permission checks
"""
from django.contrib.auth.models import AnonymousUser
from django.test import TestCase
from rest_framework import status
from marketplace.core.exceptions import BadRequestError, ConflictError, NotFoundError
from marketplace.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from marketplace.rbac import services
from marketplace.rbac.models import Role, Permission
from marketplace.rbac.permissions import is_platform_admin


class PermissionCheckTests(TestCase):

    def test_anonymous_has_nothing(self):
        self.assertFalse(services.user_has_permission(AnonymousUser(), 'inventory:view'))

    def test_superuser_has_everything(self):
        self.assertTrue(services.user_has_permission(TestDataFactory.create_admin(), 'anything:at-all'))

    def test_permission_through_role(self):
        user = TestDataFactory.create_user()
        TestDataFactory.grant_permissions(user, 'inventory:adjust')
        self.assertTrue(services.user_has_permission(user, 'inventory:adjust'))
        self.assertFalse(services.user_has_permission(user, 'inventory:transfer'))

    def test_platform_admin_by_user_type(self):
        self.assertTrue(is_platform_admin(TestDataFactory.create_user(user_type='admin')))
        self.assertFalse(is_platform_admin(TestDataFactory.create_user()))

    def test_seed_creates_defaults(self):
        TestDataFactory.seed_rbac()
        TestDataFactory.seed_rbac()
        owner = Role.objects.get(name='organization_owner')
        self.assertIn('inventory:adjust', [rp.permission.name for rp in owner.role_permissions.all()])
        self.assertEqual(Role.objects.get(name='platform_admin').role_permissions.count(),
                         Permission.objects.count())


class RoleServiceTests(TestCase):

    def test_duplicate_role(self):
        services.create_role('auditor')
        with self.assertRaises(ConflictError):
            services.create_role('auditor')

    def test_duplicate_permission_by_resource_action(self):
        services.create_permission('report:view', 'report', 'view')
        with self.assertRaises(ConflictError) as ctx:
            services.create_permission('report:see', 'report', 'view')
        self.assertIn("resource 'report', action 'view'", ctx.exception.message)

    def test_cannot_delete_assigned_permission(self):
        permission = services.create_permission('report:view', 'report', 'view')
        role = services.create_role('auditor')
        services.assign_permissions(role, [permission.pk])
        with self.assertRaises(BadRequestError):
            services.delete_permission(permission.pk)

    def test_assign_unknown_permission(self):
        role = services.create_role('auditor')
        with self.assertRaises(NotFoundError):
            services.assign_permissions(role, [424242])

    def test_revoke_missing_role(self):
        role = services.create_role('auditor')
        with self.assertRaises(NotFoundError):
            services.revoke_role(TestDataFactory.create_user(), role)


class RBACAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin()

    def test_non_admin_forbidden(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        self.assertEqual(self.client.get('/api/v1/rbac/roles/').status_code, status.HTTP_403_FORBIDDEN)

    def test_create_permission_conflict_is_409(self):
        self.client.authenticate_user(self.admin)
        payload = {'name': 'report:view', 'resource': 'report', 'action': 'view'}
        self.assertEqual(self.client.post('/api/v1/rbac/permissions/', payload, format='json').status_code,
                         status.HTTP_201_CREATED)
        response = self.client.post('/api/v1/rbac/permissions/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_assign_role_to_user(self):
        self.client.authenticate_user(self.admin)
        role = services.create_role('catalog_editor')
        permission = services.create_permission('catalog:edit', 'catalog', 'edit')
        self.client.post(f'/api/v1/rbac/roles/{role.pk}/permissions/', {'permission_ids': [permission.pk]},
                         format='json')
        user = TestDataFactory.create_user()
        response = self.client.post(f'/api/v1/rbac/users/{user.pk}/roles/', {'role_id': role.pk}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        response = self.client.get(f'/api/v1/rbac/users/{user.pk}/roles/')
        self.assertEqual(response.data['permissions'], ['catalog:edit'])
