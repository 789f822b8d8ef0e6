"""
Test suite for the Catalog module
Tests: categories, products with filters, variants, images, options, wishlists and vendor ownership checks
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status
from marketplace.catalog import services, wishlist
from marketplace.catalog.models import Product, ProductImage
from marketplace.core.exceptions import BadRequestError, NotFoundError
from marketplace.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class CategoryAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_only_admin_creates_category(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.post('/api/v1/categories/', {'name': 'Shoes', 'slug': 'shoes'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.post('/api/v1/categories/', {'name': 'Shoes', 'slug': 'shoes'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_percentage_fee_over_100_rejected(self):
        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.post('/api/v1/categories/', {
            'name': 'Bags', 'slug': 'bags', 'fee_type': 'percentage', 'fee_amount': '120.00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('fee_amount', response.data)

    def test_list_hides_inactive(self):
        TestDataFactory.create_category(name='Visible')
        hidden = TestDataFactory.create_category(name='Hidden')
        hidden.is_active = False
        hidden.save()
        response = self.client.get('/api/v1/categories/')
        self.assertEqual([c['name'] for c in response.data], ['Visible'])


class ProductAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.owner = TestDataFactory.create_user()
        self.organization = TestDataFactory.create_organization(owner=self.owner)

    def test_member_creates_product_with_slug(self):
        self.client.authenticate_user(self.owner)
        response = self.client.post('/api/v1/products/', {
            'organization_id': self.organization.pk, 'name': 'Blue Mug',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['slug'], 'blue-mug')

    def test_non_member_cannot_create(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.post('/api/v1/products/', {
            'organization_id': self.organization.pk, 'name': 'Blue Mug',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_pending_organization_cannot_list(self):
        pending = TestDataFactory.create_organization(owner=self.owner, status='pending_approval')
        self.client.authenticate_user(self.owner)
        response = self.client.post('/api/v1/products/', {'organization_id': pending.pk, 'name': 'Mug'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_search_and_price_filters(self):
        mug = TestDataFactory.create_product(organization=self.organization, name='Blue Mug')
        TestDataFactory.create_variant(product=mug, price=Decimal('12.00'))
        lamp = TestDataFactory.create_product(organization=self.organization, name='Desk Lamp')
        TestDataFactory.create_variant(product=lamp, price=Decimal('45.00'))

        response = self.client.get('/api/v1/products/?search=mug')
        self.assertEqual([p['name'] for p in response.data['results']], ['Blue Mug'])
        response = self.client.get('/api/v1/products/?min_price=20')
        self.assertEqual([p['name'] for p in response.data['results']], ['Desk Lamp'])

    def test_category_filter_includes_children(self):
        parent = TestDataFactory.create_category(name='Home')
        child = TestDataFactory.create_category(name='Kitchen', parent=parent)
        TestDataFactory.create_product(organization=self.organization, name='Pan', category=child)
        TestDataFactory.create_product(organization=self.organization, name='Car wax')
        response = self.client.get(f'/api/v1/products/?category={parent.pk}')
        self.assertEqual([p['name'] for p in response.data['results']], ['Pan'])

    def test_delete_is_soft(self):
        product = TestDataFactory.create_product(organization=self.organization)
        self.client.authenticate_user(self.owner)
        response = self.client.delete(f'/api/v1/products/{product.pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertIsNotNone(Product.objects.get(pk=product.pk).deleted_at)
        self.assertEqual(self.client.get(f'/api/v1/products/{product.pk}/').status_code, status.HTTP_404_NOT_FOUND)


class VariantAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.owner = TestDataFactory.create_user()
        organization = TestDataFactory.create_organization(owner=self.owner)
        self.product = TestDataFactory.create_product(organization=organization)

    def test_add_variant(self):
        self.client.authenticate_user(self.owner)
        response = self.client.post(f'/api/v1/products/{self.product.pk}/variants/', {
            'sku': 'MUG-BLUE-L', 'price': '14.50', 'attributes': {'size': 'L'},
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['product'], self.product.pk)

    def test_negative_price_rejected(self):
        self.client.authenticate_user(self.owner)
        response = self.client.post(f'/api/v1/products/{self.product.pk}/variants/', {
            'sku': 'MUG-BAD', 'price': '-1.00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_variant_with_reservations_not_deleted(self):
        variant = TestDataFactory.create_variant(product=self.product)
        TestDataFactory.create_inventory(variant, TestDataFactory.create_location(), quantity=5, reserved=1)
        self.client.authenticate_user(self.owner)
        response = self.client.delete(f'/api/v1/variants/{variant.pk}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class ProductImageTests(TestCase):

    def setUp(self):
        self.product = TestDataFactory.create_product()

    def _add(self, name, **kwargs):
        return services.add_image(self.product.pk, f'https://cdn.test/{name}.jpg', **kwargs)

    def test_single_main_image(self):
        first = self._add('front', is_main=True)
        second = self._add('back', is_main=True)
        first.refresh_from_db()
        self.assertFalse(first.is_main)
        self.assertTrue(second.is_main)

        services.set_main_image(self.product.pk, first.pk)
        self.assertEqual(list(ProductImage.objects.filter(is_main=True)), [first])

    def test_update_to_main_clears_others(self):
        first = self._add('front', is_main=True)
        second = self._add('back')
        services.update_image(self.product.pk, second.pk, {'is_main': True, 'alt_text': 'Back view'})
        first.refresh_from_db()
        second.refresh_from_db()
        self.assertFalse(first.is_main)
        self.assertEqual(second.alt_text, 'Back view')

    def test_listing_puts_main_first(self):
        side = self._add('side', position=1)
        back = self._add('back', position=2)
        front = self._add('front', position=3, is_main=True)
        self.assertEqual(services.list_images(self.product.pk), [front, side, back])

    def test_reorder(self):
        a, b, c = self._add('a'), self._add('b'), self._add('c')
        images = services.reorder_images(self.product.pk, [c.pk, a.pk, b.pk])
        self.assertEqual([(i.pk, i.position) for i in images], [(c.pk, 1), (a.pk, 2), (b.pk, 3)])

    def test_reorder_rejects_foreign_image(self):
        own = self._add('own')
        other = services.add_image(TestDataFactory.create_product().pk, 'https://cdn.test/other.jpg')
        with self.assertRaises(BadRequestError) as ctx:
            services.reorder_images(self.product.pk, [own.pk, other.pk])
        self.assertEqual(ctx.exception.message, 'Some IDs do not belong to this product')

    def test_image_of_other_product_not_found(self):
        other = services.add_image(TestDataFactory.create_product().pk, 'https://cdn.test/other.jpg')
        with self.assertRaises(NotFoundError):
            services.delete_image(self.product.pk, other.pk)


class ProductOptionTests(TestCase):

    def setUp(self):
        self.product = TestDataFactory.create_product()
        self.size = services.create_option(self.product.pk, 'size')

    def test_option_names_unique_per_product(self):
        with self.assertRaises(BadRequestError) as ctx:
            services.create_option(self.product.pk, 'size')
        self.assertEqual(ctx.exception.message, "Option 'size' already exists for this product")
        services.create_option(TestDataFactory.create_product().pk, 'size')

    def test_values_ordered_and_unique(self):
        small = services.add_option_value(self.size.pk, 'S', position=2)
        large = services.add_option_value(self.size.pk, 'L', position=1)
        with self.assertRaises(BadRequestError):
            services.add_option_value(self.size.pk, 'S')
        option, = services.list_options(self.product.pk)
        self.assertEqual([v.value for v in option.values.all()], ['L', 'S'])

        values = services.reorder_option_values(self.size.pk, [small.pk, large.pk])
        self.assertEqual([v.value for v in values], ['S', 'L'])

    def test_rename_value_conflict(self):
        services.add_option_value(self.size.pk, 'S')
        medium = services.add_option_value(self.size.pk, 'M')
        with self.assertRaises(BadRequestError):
            services.update_option_value(medium.pk, {'value': 'S'})
        self.assertEqual(services.update_option_value(medium.pk, {'value': 'XL'}).value, 'XL')

    def test_option_in_use_by_variant_kept(self):
        small = services.add_option_value(self.size.pk, 'S')
        medium = services.add_option_value(self.size.pk, 'M')
        variant = TestDataFactory.create_variant(product=self.product)
        variant.attributes = {'size': 'S'}
        variant.save()

        with self.assertRaises(BadRequestError):
            services.delete_option(self.size.pk)
        with self.assertRaises(BadRequestError):
            services.delete_option_value(small.pk)
        services.delete_option_value(medium.pk)
        self.assertEqual([v.value for v in services.get_option(self.size.pk).values.all()], ['S'])

    def test_delete_unused_option(self):
        services.add_option_value(self.size.pk, 'S')
        services.delete_option(self.size.pk)
        with self.assertRaises(NotFoundError):
            services.get_option(self.size.pk)


class CatalogMediaAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.owner = TestDataFactory.create_user()
        self.product = TestDataFactory.create_product(organization=TestDataFactory.create_organization(owner=self.owner))

    def test_member_adds_image_and_option(self):
        self.client.authenticate_user(self.owner)
        response = self.client.post(f'/api/v1/products/{self.product.pk}/images/',
                                    {'image_url': 'https://cdn.test/a.jpg', 'is_main': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['is_main'])

        response = self.client.post(f'/api/v1/products/{self.product.pk}/options/', {'name': 'color'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        option_id = response.data['id']
        response = self.client.post(f'/api/v1/options/{option_id}/values/', {'value': 'red'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        self.client.logout()
        response = self.client.get(f'/api/v1/products/{self.product.pk}/options/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]['values'][0]['value'], 'red')

    def test_non_member_cannot_add_image(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.post(f'/api/v1/products/{self.product.pk}/images/',
                                    {'image_url': 'https://cdn.test/a.jpg'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_duplicate_option_rejected(self):
        services.create_option(self.product.pk, 'color')
        self.client.authenticate_user(self.owner)
        response = self.client.post(f'/api/v1/products/{self.product.pk}/options/', {'name': 'color'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], "Option 'color' already exists for this product")


class WishlistTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user()
        self.variant = TestDataFactory.create_variant(price=Decimal('12.00'))

    def test_add_is_idempotent(self):
        first = wishlist.add_item(self.user, self.variant.pk)
        second = wishlist.add_item(self.user, self.variant.pk)
        self.assertEqual(first.pk, second.pk)
        self.assertEqual(wishlist.count_items(self.user), 1)

    def test_unknown_variant(self):
        with self.assertRaises(NotFoundError):
            wishlist.add_item(self.user, 999999)

    def test_bulk_add_is_all_or_nothing(self):
        with self.assertRaises(NotFoundError):
            wishlist.add_items(self.user, [self.variant.pk, 999999])
        self.assertEqual(wishlist.count_items(self.user), 0)

    def test_remove_only_own_items(self):
        item = wishlist.add_item(self.user, self.variant.pk)
        with self.assertRaises(NotFoundError):
            wishlist.remove_item(TestDataFactory.create_user(), item.pk)
        wishlist.remove_item(self.user, item.pk)
        self.assertEqual(wishlist.count_items(self.user), 0)

    def test_api_flow(self):
        services.add_image(self.variant.product_id, 'https://cdn.test/main.jpg', is_main=True)
        other = TestDataFactory.create_variant()
        self.client.authenticate_user(self.user)

        response = self.client.post('/api/v1/wishlist/items/', {'variant_ids': [self.variant.pk, other.pk]},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data), 2)

        response = self.client.get('/api/v1/wishlist/')
        self.assertEqual(response.data['count'], 2)
        saved = {item['variant']: item for item in response.data['items']}
        self.assertEqual(saved[self.variant.pk]['image_url'], 'https://cdn.test/main.jpg')
        self.assertEqual(saved[self.variant.pk]['price'], '12.00')
        self.assertIsNone(saved[other.pk]['image_url'])

        response = self.client.delete('/api/v1/wishlist/')
        self.assertEqual(response.data['deleted_count'], 2)
        self.assertEqual(self.client.get('/api/v1/wishlist/count/').data['count'], 0)

    def test_add_requires_exactly_one_field(self):
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/v1/wishlist/items/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_requires_auth(self):
        response = self.client.get('/api/v1/wishlist/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
