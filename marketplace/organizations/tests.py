"""
Test suite for Organizations
Tests: registration, approval state machine, owner notifications and access control
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status
from marketplace.core.exceptions import BadRequestError, ConflictError
from marketplace.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from marketplace.notifications.models import Notification
from marketplace.organizations import services
from marketplace.organizations.models import OrganizationUser
from marketplace.rbac.models import Role


class OrganizationServiceTests(TestCase):

    def setUp(self):
        TestDataFactory.seed_rbac()
        self.owner = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_admin()
        self.org_type = TestDataFactory.create_organization_type(code='retailer')

    def _data(self, **overrides):
        data = {
            'organization_type': 'retailer',
            'name': 'Acme Goods',
            'slug': 'acme-goods',
            'email': 'hello@acme.test',
            'phone': '5550100',
        }
        data.update(overrides)
        return data

    def test_create_pending_with_owner_membership(self):
        organization = services.create_organization(self.owner, self._data())
        self.assertEqual(organization.status, 'pending_approval')
        self.assertTrue(OrganizationUser.objects.filter(organization=organization, user=self.owner).exists())
        self.assertEqual(services.get_owner(organization), self.owner)
        self.assertEqual(organization.settings.notification_email, 'hello@acme.test')

    def test_type_without_approval_starts_active(self):
        TestDataFactory.create_organization_type(code='instant', requires_approval=False)
        organization = services.create_organization(self.owner, self._data(organization_type='instant'))
        self.assertEqual(organization.status, 'active')

    def test_duplicate_slug(self):
        services.create_organization(self.owner, self._data())
        with self.assertRaises(ConflictError) as ctx:
            services.create_organization(self.owner, self._data(email='other@acme.test'))
        self.assertEqual(ctx.exception.message, 'Organization with this slug already exists')

    def test_caller_data_left_untouched(self):
        data = self._data()
        services.create_organization(self.owner, data)
        self.assertEqual(data['organization_type'], 'retailer')
        self.assertEqual(data, self._data())

    def test_add_member_once(self):
        organization = services.create_organization(self.owner, self._data())
        staff = TestDataFactory.create_user()
        role = Role.objects.get(name='organization_staff')
        membership = services.add_member(organization, staff, role, invited_by=self.owner)
        self.assertEqual(membership.invited_by, self.owner)
        self.assertTrue(services.is_member(staff, organization.pk))
        with self.assertRaises(ConflictError):
            services.add_member(organization, staff, role)

    def test_approve_notifies_owner(self):
        organization = services.create_organization(self.owner, self._data())
        organization = services.approve_organization(organization.pk, self.admin, fee_type='percentage',
                                                     fee_amount=Decimal('7.50'))
        self.assertEqual(organization.status, 'active')
        self.assertEqual(organization.approved_by, self.admin)
        self.assertEqual(organization.fee_amount, Decimal('7.50'))
        notification = Notification.objects.get(user=self.owner, channel='in_app')
        self.assertEqual(notification.event, 'organization.approved')
        self.assertEqual(notification.data['organization_id'], organization.pk)

    def test_cannot_approve_twice(self):
        organization = services.create_organization(self.owner, self._data())
        services.approve_organization(organization.pk, self.admin)
        with self.assertRaises(BadRequestError) as ctx:
            services.approve_organization(organization.pk, self.admin)
        self.assertEqual(ctx.exception.message, 'Organization is not pending approval. Current status: active')

    def test_reject_records_reason(self):
        organization = services.create_organization(self.owner, self._data())
        organization = services.reject_organization(organization.pk, self.admin, 'Incomplete documents')
        self.assertEqual(organization.status, 'rejected')
        self.assertEqual(organization.rejection_reason, 'Incomplete documents')

    def test_suspend_and_reactivate(self):
        organization = services.create_organization(self.owner, self._data())
        services.approve_organization(organization.pk, self.admin)
        organization = services.suspend_organization(organization.pk, self.admin, 'Policy violation')
        self.assertEqual(organization.status, 'suspended')
        self.assertFalse(organization.is_active)
        organization = services.reactivate_organization(organization.pk, self.admin)
        self.assertEqual(organization.status, 'active')
        self.assertIsNone(organization.rejection_reason)

    def test_cannot_suspend_pending(self):
        organization = services.create_organization(self.owner, self._data())
        with self.assertRaises(BadRequestError):
            services.suspend_organization(organization.pk, self.admin, 'No')

    def test_approval_stats(self):
        services.create_organization(self.owner, self._data())
        TestDataFactory.create_organization(organization_type=self.org_type, status='active')
        stats = services.approval_stats()
        self.assertEqual(stats['pending'], 1)
        self.assertEqual(stats['approved'], 1)
        self.assertEqual(stats['total'], 2)


class OrganizationAPITests(TestCase):

    def setUp(self):
        TestDataFactory.seed_rbac()
        self.client = AuthenticatedAPIClient()
        self.owner = TestDataFactory.create_user()
        TestDataFactory.create_organization_type(code='retailer')

    def test_register_organization(self):
        self.client.authenticate_user(self.owner)
        response = self.client.post('/api/v1/organizations/', {
            'organization_type': 'retailer',
            'name': 'Acme Goods',
            'slug': 'acme-goods',
            'email': 'hello@acme.test',
            'phone': '5550100',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'pending_approval')

    def test_unknown_type(self):
        self.client.authenticate_user(self.owner)
        response = self.client.post('/api/v1/organizations/', {
            'organization_type': 'nope', 'name': 'X', 'slug': 'x', 'email': 'x@x.test', 'phone': '1',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_approve_requires_permission(self):
        organization = TestDataFactory.create_organization(owner=self.owner, status='pending_approval')
        self.client.authenticate_user(self.owner)
        response = self.client.post(f'/api/v1/organizations/{organization.pk}/approve/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_approver_approves(self):
        organization = TestDataFactory.create_organization(owner=self.owner, status='pending_approval')
        approver = TestDataFactory.create_user()
        TestDataFactory.grant_permissions(approver, 'organization:approve')
        self.client.authenticate_user(approver)
        response = self.client.post(f'/api/v1/organizations/{organization.pk}/approve/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'active')

    def test_non_member_cannot_view(self):
        organization = TestDataFactory.create_organization(owner=self.owner)
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get(f'/api/v1/organizations/{organization.pk}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_only_own_organizations(self):
        TestDataFactory.create_organization(owner=self.owner)
        TestDataFactory.create_organization()
        self.client.authenticate_user(self.owner)
        response = self.client.get('/api/v1/organizations/')
        self.assertEqual(response.data['meta']['total_items'], 1)

    def test_owner_adds_staff_member(self):
        organization = TestDataFactory.create_organization(owner=self.owner)
        staff = TestDataFactory.create_user()
        self.client.authenticate_user(self.owner)
        response = self.client.post(f'/api/v1/organizations/{organization.pk}/members/',
                                    {'user_id': staff.pk}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['role_name'], 'organization_staff')
        self.assertEqual(response.data['invited_by'], self.owner.pk)

        response = self.client.post(f'/api/v1/organizations/{organization.pk}/members/',
                                    {'user_id': staff.pk}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        members = self.client.get(f'/api/v1/organizations/{organization.pk}/members/')
        self.assertEqual([m['username'] for m in members.data], [self.owner.username, staff.username])

    def test_outsider_cannot_add_members(self):
        organization = TestDataFactory.create_organization(owner=self.owner)
        outsider = TestDataFactory.create_user()
        self.client.authenticate_user(outsider)
        response = self.client.post(f'/api/v1/organizations/{organization.pk}/members/',
                                    {'user_id': outsider.pk}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
