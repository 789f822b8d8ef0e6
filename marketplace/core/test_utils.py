"""
Test utilities and factories for creating test data
"""
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from marketplace.catalog.models import Category, Product, ProductVariant
from marketplace.inventory.models import VariantInventory
from marketplace.locations.models import Location
from marketplace.organizations.models import Organization, OrganizationType, OrganizationUser
from marketplace.rbac.models import Role, Permission, RolePermission, UserRole
from decimal import Decimal
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', is_staff=False, is_superuser=False,
                    user_type='customer'):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser,
            user_type=user_type,
        )

    @staticmethod
    def create_admin(username=None):
        """Create a platform admin (superuser)"""
        return TestDataFactory.create_user(username=username, is_staff=True, is_superuser=True, user_type='admin')

    @staticmethod
    def seed_rbac():
        """Create the default permissions and roles"""
        call_command('seed_rbac', stdout=StringIO())

    @staticmethod
    def grant_permissions(user, *names):
        """Give a user the named permissions through a throwaway role"""
        role = Role.objects.create(name=f'role_{TestDataFactory.random_string(8)}')
        for name in names:
            resource, action = name.split(':')
            permission, _ = Permission.objects.get_or_create(
                name=name, defaults={'resource': resource, 'action': action}
            )
            RolePermission.objects.create(role=role, permission=permission)
        UserRole.objects.create(user=user, role=role)
        return role

    @staticmethod
    def create_organization_type(code=None, requires_approval=True, default_fee_type=None,
                                 default_fee_amount=None):
        if not code:
            code = f'type_{TestDataFactory.random_string(6).lower()}'
        return OrganizationType.objects.create(
            code=code,
            display_name=code.replace('_', ' ').title(),
            requires_approval=requires_approval,
            default_fee_type=default_fee_type,
            default_fee_amount=default_fee_amount,
        )

    @staticmethod
    def create_organization(owner=None, organization_type=None, status='active', name=None,
                            fee_type=None, fee_amount=None):
        """Create a test organization; ``owner`` becomes an active member"""
        if not organization_type:
            organization_type = TestDataFactory.create_organization_type()
        if not name:
            name = f'Org {TestDataFactory.random_string(6)}'
        slug = f'org-{TestDataFactory.random_string(8).lower()}'
        organization = Organization.objects.create(
            organization_type=organization_type,
            status=status,
            name=name,
            slug=slug,
            email=f'{slug}@test.com',
            phone='1234567890',
            fee_type=fee_type,
            fee_amount=fee_amount,
        )
        if owner is not None:
            role, _ = Role.objects.get_or_create(name='organization_owner', defaults={'scope': 'organization'})
            OrganizationUser.objects.create(
                user=owner,
                organization=organization,
                role=role,
                joined_at=timezone.now(),
            )
        return organization

    @staticmethod
    def create_category(name=None, fee_type=None, fee_amount=None, parent=None):
        """Create a test category"""
        if not name:
            name = f'Category_{TestDataFactory.random_string(6)}'
        return Category.objects.create(
            name=name,
            slug=f'cat-{TestDataFactory.random_string(8).lower()}',
            parent=parent,
            fee_type=fee_type,
            fee_amount=fee_amount,
        )

    @staticmethod
    def create_product(organization=None, name=None, category=None, fee_type=None, fee_amount=None):
        """Create a test product"""
        if not organization:
            organization = TestDataFactory.create_organization()
        if not name:
            name = f'Product_{TestDataFactory.random_string(6)}'
        return Product.objects.create(
            organization=organization,
            name=name,
            slug=f'product-{TestDataFactory.random_string(8).lower()}',
            category=category,
            fee_type=fee_type,
            fee_amount=fee_amount,
        )

    @staticmethod
    def create_variant(product=None, sku=None, price=None, is_active=True):
        """Create a test product variant"""
        if not product:
            product = TestDataFactory.create_product()
        if not sku:
            sku = f'SKU_{TestDataFactory.random_string(8)}'
        if price is None:
            price = Decimal('100.00')
        return ProductVariant.objects.create(
            product=product,
            name='Default',
            sku=sku,
            price=price,
            is_active=is_active,
        )

    @staticmethod
    def create_location(organization=None, name=None, is_active=True):
        """Create a test fulfillment location"""
        if not name:
            name = f'Warehouse_{TestDataFactory.random_string(6)}'
        return Location.objects.create(
            organization=organization,
            name=name,
            address_line1=f'Test Address {name}',
            city='Springfield',
            country='US',
            is_active=is_active,
        )

    @staticmethod
    def create_inventory(variant, location, quantity=10, reserved=0):
        """Create a stock record for a variant at a location"""
        return VariantInventory.objects.create(
            variant=variant,
            location=location,
            quantity=quantity,
            reserved=reserved,
        )


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
