"""
Test suite for homepage content
"""
from django.test import TestCase
from rest_framework import status
from marketplace.cms import services
from marketplace.cms.models import HomepageContent
from marketplace.core.exceptions import BadRequestError, NotFoundError
from marketplace.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class HomepageServiceTests(TestCase):

    def test_not_configured(self):
        with self.assertRaises(NotFoundError) as ctx:
            services.get_homepage()
        self.assertEqual(ctx.exception.message, 'Homepage not configured yet')

    def test_update_section_creates_row(self):
        data = services.update_section('hero-banner', {'title': 'Summer sale'})
        self.assertEqual(HomepageContent.objects.count(), 1)
        self.assertEqual(data['heroBanner'], {'title': 'Summer sale'})
        self.assertEqual(data['footer'], {})

    def test_invalid_section(self):
        with self.assertRaises(BadRequestError) as ctx:
            services.update_section('sidebar', {})
        self.assertTrue(ctx.exception.message.startswith('Invalid section name: sidebar. Valid sections: header'))

    def test_update_invalidates_cache(self):
        services.update_section('header', {'logo': 'a.png'})
        self.assertEqual(services.get_homepage()['header'], {'logo': 'a.png'})
        services.update_section('header', {'logo': 'b.png'})
        self.assertEqual(services.get_homepage()['header'], {'logo': 'b.png'})
        self.assertEqual(HomepageContent.objects.count(), 1)

    def test_get_section(self):
        services.update_section('store-locations', {'stores': [{'city': 'Austin'}]})
        self.assertEqual(services.get_section('store-locations'), {'stores': [{'city': 'Austin'}]})

    def test_update_homepage_accepts_both_key_styles(self):
        data = services.update_homepage({'ourStory': {'text': 'Since 1999'}, 'features-bar': {'items': []}})
        self.assertEqual(data['ourStory'], {'text': 'Since 1999'})
        self.assertEqual(data['featuresBar'], {'items': []})


class HomepageAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_public_read(self):
        services.update_section('footer', {'copyright': '2026'})
        response = self.client.get('/api/v1/cms/homepage/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['footer'], {'copyright': '2026'})

    def test_missing_homepage_404(self):
        response = self.client.get('/api/v1/cms/homepage/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_update_requires_auth(self):
        response = self.client.put('/api/v1/cms/homepage/header/', {'content': {'logo': 'x'}}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_update_requires_permission(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.put('/api/v1/cms/homepage/header/', {'content': {'logo': 'x'}}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_editor_updates_section(self):
        editor = TestDataFactory.create_user()
        TestDataFactory.grant_permissions(editor, 'cms:update')
        self.client.authenticate_user(editor)
        response = self.client.put('/api/v1/cms/homepage/hero-banner/', {'content': {'title': 'Hi'}}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['heroBanner'], {'title': 'Hi'})

        response = self.client.get('/api/v1/cms/homepage/hero-banner/')
        self.assertEqual(response.data['content'], {'title': 'Hi'})
